"""Load/Save 编排 -- plan.json（规范文档）与 plan.md（派生文档）

加载流程：
1. 读取并校验 plan.json -> 成功则进入 HaveCanonical
2. HaveCanonical：读取 plan.md，比较嵌入摘要与重新计算的摘要；
   缺失、标记缺失或不一致时从 plan.json 重新生成 plan.md（auto-heal）。
   重新生成失败只记录日志，不影响返回已加载的 Plan
3. plan.json 不存在 -> 读取旧版 plan.md 交给迁移引擎；都不存在 -> None

所有函数无状态：存储位置每次显式传入（目录路径或 PlanStorage 句柄）。
同一计划的并发保存不在此串行化，仅保证不会留下损坏或拼接的文档。
"""

import os
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

import structlog

from ..config import PLAN_JSON_FILENAME, PLAN_MD_FILENAME
from ..digest import compute_plan_digest, extract_digest
from ..exceptions import (
    PlanNotFoundError,
    PlanStoreError,
    PlanValidationError,
    PlanWriteError,
    TaskNotFoundError,
    UnsafePathError,
)
from ..migration import migrate_legacy_plan
from ..models.enums import TaskStatus
from ..models.plan import Plan
from ..renderer import derive_plan_markdown
from ..validator import parse_plan_document, serialize_plan, validate_plan
from .files import PlanStateDir
from .protocols import PlanStorage

log = structlog.get_logger()

StorageTarget = str | os.PathLike[str] | PlanStorage


def open_plan_storage(target: StorageTarget) -> PlanStorage:
    """目录路径 -> PlanStateDir；已是 PlanStorage 时原样返回"""
    if isinstance(target, (str, os.PathLike)):
        return PlanStateDir(target)
    return target


async def _read_document(storage: PlanStorage, filename: str) -> bytes | None:
    """读取状态文件；路径不安全或无法读取时记录日志并返回 None"""
    try:
        return await storage.read_bytes(filename)
    except UnsafePathError as e:
        log.warning(
            "plan_path_rejected",
            location=storage.location,
            filename=filename,
            reason=e.reason,
        )
    except OSError as e:
        log.warning(
            "plan_json_unreadable" if filename == PLAN_JSON_FILENAME else "plan_markdown_unreadable",
            location=storage.location,
            filename=filename,
            error=str(e),
        )
    return None


async def _write_markdown(storage: PlanStorage, plan: Plan) -> bool:
    """写入派生的 plan.md（尽力而为，失败只记录日志）

    Returns:
        True 表示写入成功
    """
    try:
        await storage.write_text(PLAN_MD_FILENAME, derive_plan_markdown(plan))
    except (OSError, UnsafePathError) as e:
        log.warning(
            "plan_markdown_regeneration_failed",
            location=storage.location,
            error=str(e),
        )
        return False
    return True


async def ensure_markdown_in_sync(storage: PlanStorage, plan: Plan) -> bool:
    """校验 plan.md 的嵌入摘要，过期时重新生成

    Returns:
        True 表示本次重新生成了 plan.md
    """
    expected = compute_plan_digest(plan)
    current = await _read_document(storage, PLAN_MD_FILENAME)

    if current is None:
        reason = "missing"
    else:
        embedded = extract_digest(current)
        if embedded == expected:
            return False
        reason = "marker_absent" if embedded is None else "digest_mismatch"

    log.info("plan_markdown_stale", location=storage.location, reason=reason)
    regenerated = await _write_markdown(storage, plan)
    if regenerated:
        log.info("plan_markdown_regenerated", location=storage.location, digest=expected)
    return regenerated


async def load_plan_json_only(target: StorageTarget) -> Plan | None:
    """仅加载并校验 plan.json

    不做旧版迁移，也不重新生成 plan.md（供只读检查使用）。
    """
    storage = open_plan_storage(target)
    raw = await _read_document(storage, PLAN_JSON_FILENAME)
    if raw is None:
        return None
    return parse_plan_document(raw, source=f"{storage.location}/{PLAN_JSON_FILENAME}")


async def load_plan(target: StorageTarget, persist_migration: bool = False) -> Plan | None:
    """完整加载：校验 plan.json + 自动修复 plan.md，必要时回退到旧版迁移

    Args:
        target: 项目目录或 PlanStorage 句柄
        persist_migration: 旧版迁移结果是否立即保存为规范文档

    Returns:
        Plan；plan.json 无效或两种文档都不存在时返回 None
    """
    storage = open_plan_storage(target)

    raw = await _read_document(storage, PLAN_JSON_FILENAME)
    if raw is not None:
        plan = parse_plan_document(raw, source=f"{storage.location}/{PLAN_JSON_FILENAME}")
        if plan is None:
            return None
        await ensure_markdown_in_sync(storage, plan)
        return plan

    # plan.json 目录项存在但被路径策略拒绝或无法读取：fail-closed，不做迁移
    if await storage.exists(PLAN_JSON_FILENAME):
        return None

    legacy = await _read_document(storage, PLAN_MD_FILENAME)
    if legacy is None:
        return None

    migrated = migrate_legacy_plan(legacy)
    if persist_migration:
        try:
            return await save_plan(storage, migrated)
        except PlanStoreError as e:
            log.warning(
                "legacy_plan_persist_failed",
                location=storage.location,
                error=str(e),
            )
    return migrated


async def save_plan(target: StorageTarget, plan: Plan | Mapping[str, Any]) -> Plan:
    """校验后写入 plan.json，再重新生成 plan.md

    Args:
        target: 项目目录或 PlanStorage 句柄
        plan: Plan 或等价的映射（未知字段被丢弃）

    Returns:
        实际写入的全新 Plan（含 updated_at）

    Raises:
        PlanValidationError: 校验失败（如 phases 为空）
        UnsafePathError: 状态文件路径不安全
        PlanWriteError: plan.json 写入失败
    """
    storage = open_plan_storage(target)
    validated = validate_plan(plan)
    validated.updated_at = datetime.now(UTC)

    try:
        await storage.write_text(PLAN_JSON_FILENAME, serialize_plan(validated))
    except OSError as e:
        raise PlanWriteError(f"{storage.location}/{PLAN_JSON_FILENAME}", e) from e

    await _write_markdown(storage, validated)

    log.info(
        "plan_saved",
        location=storage.location,
        phase_count=len(validated.phases),
        digest=compute_plan_digest(validated),
    )
    return validated


async def update_task_status(
    target: StorageTarget,
    task_id: str,
    status: TaskStatus | str,
) -> Plan:
    """加载计划 -> 按 ID 查找任务 -> 仅修改其 status -> 保存整个文档

    Returns:
        保存后的 Plan

    Raises:
        PlanValidationError: status 不是合法的任务状态
        PlanNotFoundError: 不存在计划
        TaskNotFoundError: 计划中不存在该任务
    """
    try:
        new_status = TaskStatus(status)
    except ValueError as e:
        raise PlanValidationError(f"invalid task status: {status!r}") from e

    storage = open_plan_storage(target)
    plan = await load_plan(storage)
    if plan is None:
        raise PlanNotFoundError(storage.location)

    task = plan.find_task(task_id)
    if task is None:
        raise TaskNotFoundError(task_id)

    previous = task.status
    task.status = new_status
    saved = await save_plan(storage, plan)

    log.info(
        "plan_task_status_updated",
        location=storage.location,
        task_id=task_id,
        from_status=previous.value,
        to_status=new_status.value,
    )
    return saved


async def sync_plan(target: StorageTarget) -> Plan | None:
    """同步两种文档：自动修复 plan.md，并把旧版迁移结果保存为规范文档"""
    return await load_plan(target, persist_migration=True)
