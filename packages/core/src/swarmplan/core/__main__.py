"""CLI 入口模块 -- python -m swarmplan.core <command>

支持的命令：
  sync-plan <dir>          同步 plan.json 与 plan.md（必要时迁移旧版 plan.md）
  show <dir> [phase]       显示计划视图，可选只显示单个 phase
"""

import asyncio
import sys

import structlog

from .logging_config import setup_logging

_USAGE = """用法: python -m swarmplan.core <command> <dir> [args]
命令:
  sync-plan <dir>          同步 plan.json 与 plan.md
  show <dir> [phase]       显示计划视图"""


def main(argv: list[str] | None = None) -> int:
    """CLI 主入口

    Returns:
        进程退出码
    """
    args = sys.argv[1:] if argv is None else argv
    if len(args) < 2:
        print(_USAGE)
        return 1

    setup_logging()
    command, directory, *rest = args

    with structlog.contextvars.bound_contextvars(command=command):
        if command == "sync-plan":
            return asyncio.run(sync_plan_command(directory))
        if command == "show":
            return asyncio.run(show_command(directory, rest[0] if rest else None))

    print(f"未知命令: {command}")
    print("可用命令: sync-plan, show")
    return 1


async def sync_plan_command(directory: str) -> int:
    """执行计划同步"""
    from .renderer import render_plan_body
    from .store import sync_plan

    plan = await sync_plan(directory)
    if plan is None:
        print("未找到计划，无需同步。")
        return 1

    print(f"计划已同步: {plan.title} (migration_status={plan.migration_status or '-'})")
    print()
    print(render_plan_body(plan), end="")
    return 0


async def show_command(directory: str, phase: str | None) -> int:
    """显示计划视图"""
    from .plan_view import get_plan_data

    data = await get_plan_data(directory, phase)
    if not data.has_plan:
        print("未找到计划。")
        return 1
    if data.error_message is not None:
        print(data.error_message)
        return 1
    print(data.phase_markdown if data.phase_markdown else data.full_markdown)
    return 0


if __name__ == "__main__":
    sys.exit(main())
