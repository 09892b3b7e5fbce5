"""枚举定义

包含 PhaseStatus、TaskStatus、TaskSize、MigrationStatus 枚举，
以及 markdown 视图使用的状态标签映射。
"""

from enum import StrEnum


class PhaseStatus(StrEnum):
    """Phase 状态"""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"
    BLOCKED = "blocked"


class TaskStatus(StrEnum):
    """Task 状态

    注意终态拼写与 PhaseStatus 不同：completed vs complete。
    """

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    BLOCKED = "blocked"


class TaskSize(StrEnum):
    """任务工作量估计"""

    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"


class MigrationStatus(StrEnum):
    """迁移结果标记 -- 仅由 Legacy Migration Engine 设置"""

    NONE = "none"
    MIGRATED = "migrated"
    MIGRATION_FAILED = "migration_failed"


# markdown 视图中的 phase 状态标签
PHASE_STATUS_LABELS: dict[PhaseStatus, str] = {
    PhaseStatus.PENDING: "PENDING",
    PhaseStatus.IN_PROGRESS: "IN PROGRESS",
    PhaseStatus.COMPLETE: "COMPLETE",
    PhaseStatus.BLOCKED: "BLOCKED",
}

# legacy 文本中可识别的 phase 状态写法（小写后匹配）
PHASE_STATUS_ALIASES: dict[str, PhaseStatus] = {
    "complete": PhaseStatus.COMPLETE,
    "completed": PhaseStatus.COMPLETE,
    "in progress": PhaseStatus.IN_PROGRESS,
    "in_progress": PhaseStatus.IN_PROGRESS,
    "inprogress": PhaseStatus.IN_PROGRESS,
    "pending": PhaseStatus.PENDING,
    "blocked": PhaseStatus.BLOCKED,
}


def parse_phase_status(label: str | None) -> PhaseStatus:
    """将状态标签解析为 PhaseStatus，无法识别时返回 PENDING

    Args:
        label: 方括号内的状态文本，如 "IN PROGRESS"

    Returns:
        对应的 PhaseStatus
    """
    if not label:
        return PhaseStatus.PENDING
    normalized = " ".join(label.split()).lower()
    return PHASE_STATUS_ALIASES.get(normalized, PhaseStatus.PENDING)
