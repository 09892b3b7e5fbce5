"""日志配置 -- structlog + 标准库 logging

库代码只调用 structlog.get_logger()，从不自行配置日志；
由入口（python -m swarmplan.core）在启动时调用 setup_logging()。

dev 模式输出可读的彩色日志，json 模式每行一个 JSON 对象，便于被上层编排收集。
所有日志写到 stderr，stdout 只留给命令输出（markdown 视图）。
"""

import logging
import sys

import structlog

from .config import get_log_format, get_log_level


def setup_logging(log_format: str | None = None, log_level: str | None = None) -> None:
    """初始化 structlog 配置

    Args:
        log_format: "dev" 或 "json"，默认读取 SWARMPLAN_LOG_FORMAT
        log_level: 日志级别名，默认读取 SWARMPLAN_LOG_LEVEL
    """
    log_format = (log_format or get_log_format()).lower()
    level = getattr(logging, (log_level or get_log_level()).upper(), logging.INFO)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]

    if log_format == "json":
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer(ensure_ascii=False)
        shared_processors.append(structlog.processors.dict_tracebacks)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
            foreign_pre_chain=shared_processors,
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)
