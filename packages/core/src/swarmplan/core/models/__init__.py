"""Swarm Plan Domain Models -- 公共类型导出

所有公共模型类型从此入口导入。
"""

from .enums import (
    PHASE_STATUS_LABELS,
    MigrationStatus,
    PhaseStatus,
    TaskSize,
    TaskStatus,
    parse_phase_status,
)
from .plan import Phase, Plan, Task

__all__ = [
    # 枚举
    "PhaseStatus",
    "TaskStatus",
    "TaskSize",
    "MigrationStatus",
    "PHASE_STATUS_LABELS",
    "parse_phase_status",
    # Plan
    "Plan",
    "Phase",
    "Task",
]
