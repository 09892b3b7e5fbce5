"""packages/core 测试配置 -- 核心层 fixture"""

import copy
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
from swarmplan.core.config import PLAN_MD_FILENAME
from swarmplan.core.store import PlanStateDir

_BASE_PLAN: dict[str, Any] = {
    "schema_version": "1.0.0",
    "title": "Test Plan",
    "swarm_id": "test-swarm",
    "current_phase": 1,
    "phases": [
        {
            "id": 1,
            "name": "Phase 1",
            "status": "in_progress",
            "tasks": [
                {
                    "id": "1.1",
                    "phase": 1,
                    "status": "pending",
                    "size": "small",
                    "description": "Task one",
                    "depends": [],
                    "files_touched": [],
                }
            ],
        }
    ],
}


def make_task(task_id: str, phase: int = 1, **overrides: Any) -> dict[str, Any]:
    """构造任务字典"""
    task: dict[str, Any] = {
        "id": task_id,
        "phase": phase,
        "status": "pending",
        "size": "small",
        "description": f"Task {task_id}",
        "depends": [],
        "files_touched": [],
    }
    task.update(overrides)
    return task


def make_plan_dict(**overrides: Any) -> dict[str, Any]:
    """构造 1 个 phase / 1 个任务的计划字典，可覆盖任意顶层字段"""
    plan = copy.deepcopy(_BASE_PLAN)
    plan.update(overrides)
    return plan


class MarkdownReadOnlyStorage(PlanStateDir):
    """plan.md 写入总是失败（模拟只读存储，与运行测试的用户权限无关）"""

    async def write_text(self, filename: str, content: str) -> None:
        if filename == PLAN_MD_FILENAME:
            raise PermissionError(13, "Permission denied", filename)
        await super().write_text(filename, content)


@pytest.fixture
def make_plan() -> Callable[..., dict[str, Any]]:
    """计划字典工厂"""
    return make_plan_dict


@pytest.fixture
def task_factory() -> Callable[..., dict[str, Any]]:
    """任务字典工厂"""
    return make_task


@pytest.fixture
def readonly_markdown_storage(project_dir: Path) -> MarkdownReadOnlyStorage:
    """plan.md 不可写的存储句柄"""
    return MarkdownReadOnlyStorage(project_dir)
