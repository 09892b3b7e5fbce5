"""Plan Store 异常体系

读路径上的校验/解析失败在本地被转换为 None；
只有变更目标不存在（计划或任务）时才向调用方抛出。
"""


class PlanStoreError(Exception):
    """Plan Store 基础异常"""

    def __init__(self, message: str, recoverable: bool = True) -> None:
        """
        Args:
            message: 错误描述
            recoverable: 调用方是否可通过修正输入或重试恢复
        """
        super().__init__(message)
        self.recoverable = recoverable


class PlanValidationError(PlanStoreError):
    """计划文档不符合 schema

    读路径（load_plan / load_plan_json_only）捕获后返回 None；
    写路径（save_plan）直接抛出。
    """

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        """
        Args:
            message: 错误描述
            errors: 逐条校验错误
        """
        super().__init__(message, recoverable=True)
        self.errors = errors or []


class UnsafePathError(PlanStoreError):
    """状态文件路径包含 NUL 字节或解析后逃逸出状态目录"""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Invalid state path {path!r}: {reason}", recoverable=False)
        self.path = path
        self.reason = reason


class PlanWriteError(PlanStoreError):
    """规范文档 plan.json 写入失败

    派生文档 plan.md 的写入失败不会抛出此异常（仅记录日志）。
    """

    def __init__(self, path: str, original_error: Exception) -> None:
        """
        Args:
            path: 目标文件路径
            original_error: 原始异常
        """
        super().__init__(
            f"Failed to write plan document {path}: {original_error}",
            recoverable=True,
        )
        self.path = path
        self.original_error = original_error


class PlanNotFoundError(PlanStoreError):
    """目标目录中不存在计划"""

    def __init__(self, directory: str) -> None:
        super().__init__(f"Plan not found in directory: {directory}", recoverable=False)
        self.directory = directory


class TaskNotFoundError(PlanStoreError):
    """计划中不存在指定 ID 的任务"""

    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task not found: {task_id}", recoverable=False)
        self.task_id = task_id
