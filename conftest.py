"""全局 pytest 配置 -- 临时项目目录 + 环境变量隔离"""

from pathlib import Path

import pytest


@pytest.fixture(autouse=True)
def _isolated_plan_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """测试统一使用默认状态目录名 .swarm 与默认读取上限"""
    monkeypatch.delenv("SWARMPLAN_STATE_DIRNAME", raising=False)
    monkeypatch.delenv("SWARMPLAN_MAX_PLAN_BYTES", raising=False)


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """临时项目工作目录"""
    directory = tmp_path / "project"
    directory.mkdir()
    return directory


@pytest.fixture
def state_dir(project_dir: Path) -> Path:
    """项目下的 .swarm 状态目录（已创建）"""
    directory = project_dir / ".swarm"
    directory.mkdir()
    return directory
