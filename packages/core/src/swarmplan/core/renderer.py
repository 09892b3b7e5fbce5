"""Markdown Renderer -- Plan -> plan.md

纯函数、确定性、全函数：同一个 Plan 渲染两次结果逐字节一致，
因此输出中不包含任何时间戳。
展示顺序（phase 按 ID 升序、task 按自然序）只影响展示，从不回写到存储顺序。
"""

import re

from .digest import compute_plan_digest, embed_digest
from .models.enums import PHASE_STATUS_LABELS, PhaseStatus, TaskStatus
from .models.plan import Phase, Plan, Task

CURRENT_TASK_MARKER = "← CURRENT"

_INT_SEGMENT_RE = re.compile(r"^-?\d+$")


def task_id_sort_key(task_id: str) -> tuple[tuple[int, int, str], ...]:
    """任务 ID 自然排序键："1.2" < "1.10" < "1.a"

    按 "." 分段：整数段（含负数、前导零）按数值比较并排在非数字段之前，
    非数字段按字典序比较。超出 int 转换位数上限的数字段退化为字典序。
    """
    key: list[tuple[int, int, str]] = []
    for segment in task_id.split("."):
        if _INT_SEGMENT_RE.match(segment):
            try:
                key.append((0, int(segment), ""))
                continue
            except ValueError:
                pass
        key.append((1, 0, segment))
    return tuple(key)


def _phase_label(status: PhaseStatus | None) -> str:
    if status is None:
        return PHASE_STATUS_LABELS[PhaseStatus.PENDING]
    return PHASE_STATUS_LABELS.get(status, PHASE_STATUS_LABELS[PhaseStatus.PENDING])


def render_task_line(task: Task, is_current: bool = False) -> str:
    """渲染单个任务行"""
    if task.status == TaskStatus.COMPLETED:
        line = f"- [x] {task.id}: {task.description}"
    elif task.status == TaskStatus.BLOCKED:
        line = f"- [BLOCKED] {task.id}: {task.description}"
        if task.blocked_reason:
            line += f" - {task.blocked_reason}"
    else:
        line = f"- [ ] {task.id}: {task.description}"

    line += f" [{task.size.value.upper()}]"

    if task.depends:
        line += f" (depends: {', '.join(sorted(task.depends))})"
    if is_current:
        line += f" {CURRENT_TASK_MARKER}"
    return line


def render_phase_section(phase: Phase, current_phase: int) -> list[str]:
    """渲染单个 phase 段落（标题行 + 任务行）"""
    lines = [f"## Phase {phase.id}: {phase.name} [{_phase_label(phase.status)}]"]

    # sorted 是稳定排序：自然序相同的 ID（如 "1.01" 与 "1.1"）保持存储顺序
    ordered_tasks = sorted(phase.tasks, key=lambda t: task_id_sort_key(t.id))

    current_marked = False
    for task in ordered_tasks:
        is_current = (
            not current_marked
            and phase.id == current_phase
            and task.status == TaskStatus.IN_PROGRESS
        )
        if is_current:
            current_marked = True
        lines.append(render_task_line(task, is_current=is_current))
    return lines


def render_plan_body(plan: Plan) -> str:
    """渲染不含摘要标记的 markdown 正文"""
    current = plan.find_phase(plan.current_phase)
    lines = [
        f"# {plan.title}",
        f"Swarm: {plan.swarm_id}",
        f"Phase: {plan.current_phase} [{_phase_label(current.status if current else None)}]",
    ]

    for phase in sorted(plan.phases, key=lambda p: p.id):
        lines.append("")
        lines.append("---")
        lines.extend(render_phase_section(phase, plan.current_phase))

    return "\n".join(lines) + "\n"


def derive_plan_markdown(plan: Plan) -> str:
    """生成完整的 plan.md 内容：摘要标记行 + 正文"""
    return embed_digest(render_plan_body(plan), compute_plan_digest(plan))
