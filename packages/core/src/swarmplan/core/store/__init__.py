"""Swarm Plan Store -- plan.json / plan.md 持久化

对外提供无状态的编排函数，存储位置（项目目录或 PlanStorage 句柄）每次显式传入。
"""

from .files import PlanStateDir
from .plan_store import (
    StorageTarget,
    ensure_markdown_in_sync,
    load_plan,
    load_plan_json_only,
    open_plan_storage,
    save_plan,
    sync_plan,
    update_task_status,
)
from .protocols import PlanStorage

__all__ = [
    "PlanStorage",
    "PlanStateDir",
    "StorageTarget",
    "open_plan_storage",
    "load_plan",
    "load_plan_json_only",
    "save_plan",
    "update_task_status",
    "sync_plan",
    "ensure_markdown_in_sync",
]
