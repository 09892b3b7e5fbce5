"""Legacy Migration Engine -- 旧版自由文本 plan.md -> Plan

逐行分类（标题 / Swarm / 当前 phase / phase 标题 / 任务 / 其他），
再由一个小状态机（BEFORE_PHASE -> IN_PHASE）组装 Plan。

- 永不抛出：无法解析时返回 migration_status=migration_failed 的最小合法 Plan
- 任务按源文本中出现的顺序追加，不排序
- 标题、描述等文本原样保留（不做任何转义或清洗）
"""

import re
from dataclasses import dataclass, field
from enum import StrEnum

import structlog

from .config import PLAN_SCHEMA_VERSION
from .models.enums import (
    MigrationStatus,
    PhaseStatus,
    TaskSize,
    TaskStatus,
    parse_phase_status,
)
from .models.plan import Phase, Plan, Task
from .renderer import CURRENT_TASK_MARKER

log = structlog.get_logger()

DEFAULT_TITLE = "Untitled Plan"
DEFAULT_SWARM_ID = "default-swarm"

_PHASE_HEADER_RE = re.compile(
    r"^##\s*Phase\s+(\d+)(?:\s*:\s*([^\[]*))?\s*(?:\[([^\]]*)\])?",
    re.IGNORECASE,
)
_CURRENT_PHASE_RE = re.compile(r"^Phase:\s*(\d+)", re.IGNORECASE)
_TASK_RE = re.compile(r"^[-*]\s*\[([^\]]*)\]\s+([^\s:\[\]]+)\s*:\s*(.*)$")
_DEPENDS_SUFFIX_RE = re.compile(r"\s*\(depends:\s*([^)]*)\)\s*$", re.IGNORECASE)
_SIZE_SUFFIX_RE = re.compile(r"\s*\[(small|medium|large)\]\s*$", re.IGNORECASE)
_SURROGATE_RE = re.compile("[\ud800-\udfff]")


class LineKind(StrEnum):
    """行分类结果"""

    TITLE = "title"
    SWARM = "swarm"
    CURRENT_PHASE = "current_phase"
    PHASE_HEADER = "phase_header"
    TASK = "task"
    OTHER = "other"


class ParserState(StrEnum):
    """迁移状态机状态"""

    BEFORE_PHASE = "before_phase"
    IN_PHASE = "in_phase"


@dataclass(frozen=True)
class LineToken:
    """单行分类结果及其捕获字段"""

    kind: LineKind
    text: str
    phase_id: int | None = None
    name: str | None = None
    status_label: str | None = None
    checkbox: str | None = None
    task_id: str | None = None
    body: str | None = None


@dataclass
class _PhaseDraft:
    id: int
    name: str
    status: PhaseStatus
    tasks: list[Task] = field(default_factory=list)


def classify_line(line: str) -> LineToken:
    """对单行文本分类，不依赖上下文"""
    text = line.strip()

    if text.startswith("# "):
        return LineToken(LineKind.TITLE, text, name=text[2:].strip())

    if text.startswith("Swarm:"):
        return LineToken(LineKind.SWARM, text, name=text[len("Swarm:"):].strip())

    if text.startswith("Phase:"):
        match = _CURRENT_PHASE_RE.match(text)
        phase_id = _safe_int(match.group(1)) if match else None
        return LineToken(LineKind.CURRENT_PHASE, text, phase_id=phase_id)

    match = _PHASE_HEADER_RE.match(text)
    if match:
        phase_id = _safe_int(match.group(1))
        if phase_id is not None:
            return LineToken(
                LineKind.PHASE_HEADER,
                text,
                phase_id=phase_id,
                name=(match.group(2) or "").strip(),
                status_label=match.group(3),
            )

    match = _TASK_RE.match(text)
    if match:
        return LineToken(
            LineKind.TASK,
            text,
            checkbox=match.group(1).strip().lower(),
            task_id=match.group(2),
            body=match.group(3),
        )

    return LineToken(LineKind.OTHER, text)


def _safe_int(value: str) -> int | None:
    try:
        return int(value)
    except ValueError:
        return None


def parse_task_body(checkbox: str, body: str) -> tuple[TaskStatus, TaskSize, str, list[str], str | None]:
    """从右向左剥离任务行尾部标记

    支持的尾部（顺序不限）：← CURRENT、(depends: a, b)、[SIZE]；
    blocked 任务描述中的 " - <reason>" 作为阻塞原因。

    Returns:
        (status, size, description, depends, blocked_reason)
    """
    description = body.strip()
    size = TaskSize.SMALL
    depends: list[str] = []
    is_current = False

    while True:
        if description.endswith(CURRENT_TASK_MARKER):
            is_current = True
            description = description[: -len(CURRENT_TASK_MARKER)].rstrip()
            continue
        match = _DEPENDS_SUFFIX_RE.search(description)
        if match:
            depends = [d.strip() for d in match.group(1).split(",") if d.strip()]
            description = description[: match.start()].rstrip()
            continue
        match = _SIZE_SUFFIX_RE.search(description)
        if match:
            size = TaskSize(match.group(1).lower())
            description = description[: match.start()].rstrip()
            continue
        break

    blocked_reason: str | None = None
    if checkbox == "x":
        status = TaskStatus.COMPLETED
    elif checkbox == "blocked":
        status = TaskStatus.BLOCKED
        head, sep, reason = description.rpartition(" - ")
        if sep and reason.strip():
            description = head.rstrip()
            blocked_reason = reason.strip()
    elif is_current:
        status = TaskStatus.IN_PROGRESS
    else:
        status = TaskStatus.PENDING

    return status, size, description, depends, blocked_reason


def build_failed_plan(title: str = DEFAULT_TITLE, swarm_id: str = DEFAULT_SWARM_ID) -> Plan:
    """构造迁移失败时返回的最小合法 Plan（含一个占位 phase）"""
    return Plan(
        schema_version=PLAN_SCHEMA_VERSION,
        title=title,
        swarm_id=swarm_id,
        current_phase=1,
        migration_status=MigrationStatus.MIGRATION_FAILED,
        phases=[
            Phase(
                id=1,
                name="Migration Failed",
                status=PhaseStatus.BLOCKED,
                tasks=[
                    Task(
                        id="1.1",
                        phase=1,
                        status=TaskStatus.BLOCKED,
                        size=TaskSize.LARGE,
                        description="Review and restructure plan manually",
                        blocked_reason="Legacy plan could not be parsed automatically",
                    )
                ],
            )
        ],
    )


def migrate_legacy_plan(plan_content: str | bytes, swarm_id: str | None = None) -> Plan:
    """将旧版 plan.md 文本转换为 Plan（纯函数，无 I/O）

    Args:
        plan_content: 旧版 markdown 文本
        swarm_id: 文本中没有 "Swarm:" 行时使用的 swarm 标识

    Returns:
        Plan；解析不到任何 phase 时 migration_status=migration_failed
    """
    fallback_swarm = _replace_surrogates(swarm_id) if swarm_id else DEFAULT_SWARM_ID
    try:
        return _migrate(plan_content, fallback_swarm)
    except Exception as e:
        log.warning("legacy_plan_migration_failed", reason="parser_error", error=str(e))
        return build_failed_plan(swarm_id=fallback_swarm)


def _replace_surrogates(text: str) -> str:
    """孤立代理项替换为 U+FFFD，保证结果可编码为 UTF-8"""
    return _SURROGATE_RE.sub("\ufffd", text)


def _migrate(plan_content: str | bytes, fallback_swarm: str) -> Plan:
    if isinstance(plan_content, bytes):
        plan_content = plan_content.decode("utf-8", errors="replace")
    else:
        plan_content = _replace_surrogates(plan_content)

    title: str | None = None
    swarm = fallback_swarm
    current_phase: int | None = None
    drafts: dict[int, _PhaseDraft] = {}
    seen_task_ids: set[str] = set()
    state = ParserState.BEFORE_PHASE
    active: _PhaseDraft | None = None

    for line in plan_content.splitlines():
        token = classify_line(line)

        if token.kind == LineKind.TITLE:
            if title is None and token.name:
                title = token.name
        elif token.kind == LineKind.SWARM:
            if token.name:
                swarm = token.name
        elif token.kind == LineKind.CURRENT_PHASE:
            if token.phase_id is not None:
                current_phase = token.phase_id
        elif token.kind == LineKind.PHASE_HEADER and token.phase_id is not None:
            active = drafts.get(token.phase_id)
            if active is None:
                active = _PhaseDraft(
                    id=token.phase_id,
                    name=token.name or f"Phase {token.phase_id}",
                    status=parse_phase_status(token.status_label),
                )
                drafts[token.phase_id] = active
            state = ParserState.IN_PHASE
        elif token.kind == LineKind.TASK and token.task_id and token.body is not None:
            if state == ParserState.BEFORE_PHASE or active is None:
                log.debug("legacy_task_without_phase", task_id=token.task_id)
                continue
            if token.task_id in seen_task_ids:
                log.debug("legacy_duplicate_task_skipped", task_id=token.task_id)
                continue
            status, size, description, depends, blocked_reason = parse_task_body(
                token.checkbox or "", token.body
            )
            active.tasks.append(
                Task(
                    id=token.task_id,
                    phase=active.id,
                    status=status,
                    size=size,
                    description=description,
                    depends=depends,
                    blocked_reason=blocked_reason,
                )
            )
            seen_task_ids.add(token.task_id)

    if not drafts:
        log.warning("legacy_plan_migration_failed", reason="no_phases_found")
        return build_failed_plan(title=title or DEFAULT_TITLE, swarm_id=swarm)

    phases = [
        Phase(id=d.id, name=d.name, status=d.status, tasks=d.tasks)
        for d in drafts.values()
    ]
    plan = Plan(
        schema_version=PLAN_SCHEMA_VERSION,
        title=title or DEFAULT_TITLE,
        swarm_id=swarm,
        current_phase=current_phase if current_phase is not None else phases[0].id,
        migration_status=MigrationStatus.MIGRATED,
        phases=phases,
    )
    log.info(
        "legacy_plan_migrated",
        phase_count=len(phases),
        task_count=len(seen_task_ids),
    )
    return plan
