"""Plan 只读视图 -- 供状态/诊断等协作方读取

只调用 load_plan_json_only，不会触发迁移或重新生成 plan.md；
没有规范文档时回退为原样返回旧版 plan.md 文本。
"""

import re

from pydantic import BaseModel, Field

from .config import PLAN_MD_FILENAME
from .exceptions import UnsafePathError
from .renderer import render_plan_body
from .store import StorageTarget, load_plan_json_only, open_plan_storage

_PHASE_SECTION_RE = re.compile(r"^## Phase (\d+)")


class PlanData(BaseModel):
    """计划视图数据"""

    has_plan: bool = Field(description="是否存在计划")
    full_markdown: str = Field(default="", description="完整 markdown 视图")
    requested_phase: int | None = Field(default=None, description="请求的 phase ID")
    phase_markdown: str | None = Field(default=None, description="请求 phase 的 markdown 段落")
    error_message: str | None = Field(default=None, description="错误信息")
    is_legacy: bool = Field(default=False, description="是否来自旧版 plan.md")


def extract_phase_markdown(markdown: str, phase_id: int) -> str | None:
    """从 markdown 中截取指定 phase 段落

    从 "## Phase <id>" 开始，到下一个 phase 标题或 "---" 分隔线为止。
    """
    phase_lines: list[str] = []
    in_target = False

    for line in markdown.splitlines():
        match = _PHASE_SECTION_RE.match(line)
        if match:
            if match.group(1).lstrip("0") == str(phase_id).lstrip("0"):
                in_target = True
                phase_lines.append(line)
                continue
            if in_target:
                break
        if in_target and line.strip() == "---" and len(phase_lines) > 1:
            break
        if in_target:
            phase_lines.append(line)

    return "\n".join(phase_lines).strip() if phase_lines else None


def _parse_phase_arg(phase: int | str | None) -> tuple[bool, int | None]:
    """Returns: (是否请求了 phase, 解析出的 phase ID)"""
    if phase is None or phase == "":
        return False, None
    if isinstance(phase, int):
        return True, phase
    try:
        return True, int(str(phase).strip())
    except ValueError:
        return True, None


async def get_plan_data(target: StorageTarget, phase: int | str | None = None) -> PlanData:
    """读取计划视图，可选截取单个 phase

    Args:
        target: 项目目录或 PlanStorage 句柄
        phase: phase ID（整数或字符串）；非数字字符串不截取段落
    """
    requested, phase_id = _parse_phase_arg(phase)
    plan = await load_plan_json_only(target)

    if plan is not None:
        full_markdown = render_plan_body(plan)
        data = PlanData(has_plan=True, full_markdown=full_markdown, requested_phase=phase_id)
        if not requested or phase_id is None:
            return data
        if plan.find_phase(phase_id) is None:
            data.error_message = f"Phase {phase_id} not found in plan."
            return data
        data.phase_markdown = extract_phase_markdown(full_markdown, phase_id)
        return data

    storage = open_plan_storage(target)
    try:
        raw = await storage.read_bytes(PLAN_MD_FILENAME)
    except (OSError, UnsafePathError):
        raw = None
    if not raw:
        return PlanData(has_plan=False, is_legacy=True)

    legacy_markdown = raw.decode("utf-8", errors="replace")
    data = PlanData(
        has_plan=True,
        full_markdown=legacy_markdown,
        requested_phase=phase_id,
        is_legacy=True,
    )
    if not requested or phase_id is None:
        return data

    data.phase_markdown = extract_phase_markdown(legacy_markdown, phase_id)
    if data.phase_markdown is None:
        data.error_message = f"Phase {phase_id} not found in plan."
    return data
