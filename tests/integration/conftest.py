"""集成测试共享 fixture"""

from typing import Any

import pytest


@pytest.fixture
def sample_plan() -> dict[str, Any]:
    """两个 phase 的示例计划"""
    return {
        "schema_version": "1.0.0",
        "title": "Ship Feature X",
        "swarm_id": "mega",
        "current_phase": 1,
        "phases": [
            {
                "id": 1,
                "name": "Foundation",
                "status": "in_progress",
                "tasks": [
                    {"id": "1.1", "phase": 1, "description": "Define schema", "size": "small"},
                    {
                        "id": "1.2",
                        "phase": 1,
                        "description": "Implement store",
                        "size": "medium",
                        "depends": ["1.1"],
                        "acceptance": "round-trips through save/load",
                    },
                    {
                        "id": "1.10",
                        "phase": 1,
                        "description": "Write docs",
                        "files_touched": ["README.md"],
                    },
                ],
            },
            {
                "id": 2,
                "name": "Rollout",
                "status": "pending",
                "tasks": [
                    {"id": "2.1", "phase": 2, "description": "Enable flag", "size": "large"},
                ],
            },
        ],
    }
