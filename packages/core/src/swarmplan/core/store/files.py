"""PlanStorage 文件系统实现

状态文件位于 <directory>/<state dirname>/ 下（默认 .swarm/）。
路径策略：任何状态文件解析（含符号链接）后都必须位于状态目录之内，
状态目录本身也必须位于项目目录之内；包含 NUL 的路径直接拒绝。

写入采用同目录临时文件 + os.replace，保证读者只会看到完整的旧内容或新内容。
阻塞文件操作通过 asyncio.to_thread 派发。
"""

import asyncio
import contextlib
import os
import secrets
import stat
from pathlib import Path

from ..config import get_state_dirname
from ..exceptions import UnsafePathError


class PlanStateDir:
    """项目工作目录下的计划状态目录"""

    def __init__(self, directory: str | os.PathLike[str], dirname: str | None = None) -> None:
        """
        Args:
            directory: 项目工作目录
            dirname: 状态目录名，默认读取 SWARMPLAN_STATE_DIRNAME
        """
        self._directory = os.fspath(directory)
        self._dirname = dirname if dirname is not None else get_state_dirname()

    @property
    def location(self) -> str:
        return self._directory

    @property
    def state_dir(self) -> Path:
        """未解析的状态目录路径"""
        return Path(self._directory) / self._dirname

    def resolve(self, filename: str) -> Path:
        """解析状态文件路径并执行路径策略检查

        Raises:
            UnsafePathError: 包含 NUL、无法解析或逃逸出状态目录
        """
        raw = os.path.join(self._directory, self._dirname, filename)
        if "\x00" in raw:
            raise UnsafePathError(raw, "contains null bytes")

        try:
            project_dir = Path(self._directory).resolve()
            base = self.state_dir.resolve()
            target = (base / filename).resolve()
        except (OSError, ValueError, RuntimeError) as e:
            raise UnsafePathError(raw, f"cannot be resolved: {e}") from e

        if base == project_dir or not base.is_relative_to(project_dir):
            raise UnsafePathError(raw, "state directory escapes project directory")
        if target == base or not target.is_relative_to(base):
            raise UnsafePathError(raw, "path escapes state directory")
        return target

    async def read_bytes(self, filename: str) -> bytes | None:
        path = self.resolve(filename)
        return await asyncio.to_thread(_read_bytes_or_none, path)

    async def write_text(self, filename: str, content: str) -> None:
        path = self.resolve(filename)
        await asyncio.to_thread(_atomic_write_text, path, content)

    async def exists(self, filename: str) -> bool:
        """目录项是否存在（不跟随最后一级符号链接）

        被路径策略拒绝的文件只要目录项存在也返回 True，
        调用方据此区分"没有 plan.json"与"plan.json 不可用"。
        """
        path = self._entry_path(filename)
        if path is None:
            return False
        return await asyncio.to_thread(os.path.lexists, path)

    def _entry_path(self, filename: str) -> Path | None:
        """状态目录下的目录项路径；文件名本身不安全时返回 None"""
        if "\x00" in filename or "\x00" in self._directory or "\x00" in self._dirname:
            return None
        if os.path.isabs(filename):
            return None
        rel = os.path.normpath(filename)
        if rel in (os.curdir, os.pardir) or rel.startswith(os.pardir + os.sep):
            return None
        return self.state_dir / rel


def _read_bytes_or_none(path: Path) -> bytes | None:
    try:
        return path.read_bytes()
    except (FileNotFoundError, NotADirectoryError):
        return None


def _atomic_write_text(path: Path, content: str) -> None:
    """同目录临时文件写入后 os.replace 覆盖目标文件

    新文件的权限遵循 umask；覆盖已有文件时沿用其原有权限。
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(f".{path.name}.tmp.{secrets.token_hex(8)}")
    fd = os.open(tmp_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o666)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        with contextlib.suppress(FileNotFoundError):
            os.chmod(tmp_path, stat.S_IMODE(os.stat(path).st_mode))
        # os.replace 在同一文件系统上是原子的
        os.replace(tmp_path, path)
    except BaseException:
        with contextlib.suppress(OSError):
            tmp_path.unlink()
        raise
