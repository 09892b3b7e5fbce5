"""Store Protocol 接口定义

PlanStorage 是编排层唯一依赖的存储句柄，每次调用显式传入，
不持有长生命周期的文件句柄，也不使用全局单例。
"""

from typing import Protocol


class PlanStorage(Protocol):
    """计划状态文件存储接口

    三个方法即全部挂起点：读文件、写文件、判断文件是否存在。
    """

    @property
    def location(self) -> str:
        """用于日志与错误信息的存储位置描述"""
        ...

    async def read_bytes(self, filename: str) -> bytes | None:
        """读取文件全部内容，文件不存在时返回 None

        Raises:
            UnsafePathError: 路径不安全
            OSError: 文件存在但无法读取
        """
        ...

    async def write_text(self, filename: str, content: str) -> None:
        """原子写入 UTF-8 文本（要么旧内容，要么新内容，不会出现拼接）

        Raises:
            UnsafePathError: 路径不安全
            OSError: 写入失败
        """
        ...

    async def exists(self, filename: str) -> bool:
        """判断目录项是否存在

        即使该文件被路径策略拒绝或不可读，只要目录项存在就返回 True。
        """
        ...
