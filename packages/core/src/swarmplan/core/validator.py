"""Schema & Validator

validate_plan: 原始字节/文本/映射 -> Plan，失败抛出 PlanValidationError。
parse_plan_document: 读路径使用的 fail-closed 版本，失败返回 None。

纯函数，无副作用。每次都通过 Plan.model_validate 逐字段构造全新实例，
未声明字段被丢弃，不会把不可信输入合并到任何共享对象上。
"""

import json
from collections.abc import Mapping
from typing import Any

import structlog
from pydantic import ValidationError

from .config import get_max_plan_bytes
from .exceptions import PlanValidationError
from .models.plan import Plan

log = structlog.get_logger()

_UTF8_BOM = "\ufeff"


def decode_plan_document(raw: bytes | str) -> str:
    """将原始内容解码为文本并做编码层面的检查

    Args:
        raw: plan.json 原始字节或文本

    Returns:
        解码后的文本

    Raises:
        PlanValidationError: 非法 UTF-8、包含 NUL、带 BOM 或超出大小上限
    """
    max_bytes = get_max_plan_bytes()
    if isinstance(raw, bytes):
        if len(raw) > max_bytes:
            raise PlanValidationError(f"plan document exceeds {max_bytes} bytes")
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise PlanValidationError(f"plan document is not valid UTF-8: {e}") from e
    else:
        text = raw
        if len(text) > max_bytes:
            raise PlanValidationError(f"plan document exceeds {max_bytes} bytes")

    if "\x00" in text:
        raise PlanValidationError("plan document contains NUL bytes")
    if text.startswith(_UTF8_BOM):
        raise PlanValidationError("plan document starts with a byte order mark")
    return text


def validate_plan(raw: bytes | str | Mapping[str, Any] | Plan) -> Plan:
    """校验并构造全新的 Plan

    接受 plan.json 原始字节、JSON 文本、已解析的映射或已有 Plan 实例。
    传入 Plan 实例时先导出为普通数据再重新校验，返回值与入参没有任何别名关系。

    Raises:
        PlanValidationError: 编码、JSON 语法或 schema 校验失败
    """
    if isinstance(raw, Plan):
        data: Any = raw.model_dump(mode="json")
    elif isinstance(raw, (bytes, str)):
        text = decode_plan_document(raw)
        try:
            data = json.loads(text)
        except RecursionError as e:
            raise PlanValidationError("plan document is nested too deeply") from e
        except ValueError as e:
            # JSONDecodeError 以及超出整数位数上限的数字
            raise PlanValidationError(f"plan document is not valid JSON: {e}") from e
    else:
        data = raw

    if not isinstance(data, Mapping):
        raise PlanValidationError(
            f"plan document must be a JSON object, got {type(data).__name__}"
        )

    try:
        return Plan.model_validate(dict(data))
    except ValidationError as e:
        errors = [
            f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}"
            for err in e.errors()
        ]
        raise PlanValidationError("plan document failed schema validation", errors) from e
    except RecursionError as e:
        raise PlanValidationError("plan document is nested too deeply") from e


def parse_plan_document(raw: bytes | str, source: str = "plan.json") -> Plan | None:
    """fail-closed 解析：任何失败都记录 warning 并返回 None

    Args:
        raw: 原始字节或文本
        source: 日志中标识来源的路径

    Returns:
        校验通过的 Plan，否则 None
    """
    try:
        return validate_plan(raw)
    except PlanValidationError as e:
        log.warning(
            "plan_json_invalid",
            source=source,
            error=str(e),
            details=e.errors[:10],
        )
        return None


def serialize_plan(plan: Plan) -> str:
    """将 Plan 序列化为规范 JSON 文本（省略值为 None 的可选字段）"""
    return plan.model_dump_json(indent=2, exclude_none=True) + "\n"
