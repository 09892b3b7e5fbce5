"""Integrity Digest Engine

plan.md 首行嵌入 <!-- PLAN_HASH: <digest> -->，记录它派生自哪一份 plan.json 快照。
摘要只用于低成本判断 "markdown 是否落后于 JSON"，不是安全凭证。
"""

import hashlib
import json
import re
from typing import Any

from .config import PLAN_HASH_MARKER_PREFIX
from .models.plan import Plan

# 参与摘要计算的顶层字段，按此顺序序列化
CANONICAL_PLAN_FIELDS: tuple[str, ...] = (
    "schema_version",
    "title",
    "swarm_id",
    "current_phase",
    "migration_status",
    "phases",
)

_MARKER_RE = re.compile(
    rf"^\s*<!--\s*{PLAN_HASH_MARKER_PREFIX}:\s*([A-Za-z0-9_-]+)\s*-->"
)


def canonical_plan_content(plan: Plan) -> dict[str, Any]:
    """提取参与摘要计算的字段（保持存储顺序，省略值为 None 的可选字段）"""
    dumped = plan.model_dump(mode="json", exclude_none=True)
    return {field: dumped[field] for field in CANONICAL_PLAN_FIELDS if field in dumped}


def compute_plan_digest(plan: Plan) -> str:
    """计算计划内容摘要

    Args:
        plan: 已校验的 Plan

    Returns:
        SHA-256 十六进制摘要（调用方应视为不透明 token）
    """
    serialized = json.dumps(
        canonical_plan_content(plan),
        ensure_ascii=False,
        separators=(",", ":"),
    )
    return hashlib.sha256(serialized.encode("utf-8")).hexdigest()


def format_digest_marker(digest: str) -> str:
    """生成摘要标记行（不含换行）"""
    return f"<!-- {PLAN_HASH_MARKER_PREFIX}: {digest} -->"


def extract_digest(markdown: str | bytes) -> str | None:
    """从 markdown 中提取第一个格式正确的摘要标记

    - 缺失标记（早期无摘要的文档）：返回 None
    - 多个标记：取第一个格式正确的
    - 其他注释风格、截断或畸形标记：视为缺失

    任何输入内容都不会抛出异常。
    """
    if isinstance(markdown, bytes):
        markdown = markdown.decode("utf-8", errors="replace")
    for line in markdown.splitlines():
        match = _MARKER_RE.match(line)
        if match:
            return match.group(1)
    return None


def strip_digest_markers(markdown: str) -> str:
    """移除文档开头连续的摘要标记行"""
    lines = markdown.splitlines(keepends=True)
    index = 0
    while index < len(lines) and _MARKER_RE.match(lines[index]):
        index += 1
    return "".join(lines[index:])


def embed_digest(markdown: str, digest: str) -> str:
    """在 markdown 开头写入唯一的摘要标记行（替换已有的开头标记）"""
    return f"{format_digest_marker(digest)}\n{strip_digest_markers(markdown)}"
