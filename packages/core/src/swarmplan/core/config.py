"""配置常量模块 -- 可通过环境变量覆盖

包含计划状态目录名、plan.json / plan.md 文件名、schema 版本、读取大小上限等常量。
"""

import os

# 唯一支持的 schema 版本（必须精确匹配，不做升级或修正）
PLAN_SCHEMA_VERSION: str = "1.0.0"

# 规范文档（唯一事实来源）
PLAN_JSON_FILENAME: str = "plan.json"

# 派生文档（可随时重新生成的 markdown 视图）
PLAN_MD_FILENAME: str = "plan.md"

# plan.md 首行摘要标记名：<!-- PLAN_HASH: <digest> -->
PLAN_HASH_MARKER_PREFIX: str = "PLAN_HASH"


def get_state_dirname() -> str:
    """获取项目工作目录下的状态目录名"""
    return os.environ.get("SWARMPLAN_STATE_DIRNAME", ".swarm")


def get_max_plan_bytes() -> int:
    """获取规范文档读取上限（字节），超出视为无效文档"""
    return int(os.environ.get("SWARMPLAN_MAX_PLAN_BYTES", str(32 * 1024 * 1024)))


def get_log_format() -> str:
    """获取日志渲染模式：dev（默认）或 json"""
    return os.environ.get("SWARMPLAN_LOG_FORMAT", "dev")


def get_log_level() -> str:
    """获取根日志级别"""
    return os.environ.get("SWARMPLAN_LOG_LEVEL", "INFO")
