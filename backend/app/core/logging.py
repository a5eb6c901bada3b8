# app/core/logging.py
# 日志配置
#
# 功能说明：
# 1. setup_logging()：按 LOG_FORMAT 选择彩色控制台（开发）或 JSON（生产）输出
# 2. get_logger(__name__)：每个模块一个 logger
# 3. RequestLoggingMiddleware：记录每个请求的方法、路径、状态码和耗时
#
# 审批引擎的日志统一带前缀，便于 grep：
#   [DecisionRecorder] letter xxx: tpo approve → 汇总 pending
#   [AccessGate] 拒绝 draft_letter: profile xxx 缺少 ['dean']
#
# 结构化字段：
#   logger.info("表态已记录", extra={"extra_data": {"entity_id": "..."}})
#   JSON 格式下输出到 "extra"，控制台格式下追加在消息后

import json
import logging
import sys
import time
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.config import settings


RESET = "\033[0m"

# 日志级别 → 终端颜色
LEVEL_COLORS = {
    "DEBUG": "\033[34m",
    "INFO": "\033[32m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[35m",
}
TIME_COLOR = "\033[36m"
LOCATION_COLOR = "\033[90m"

# 不记录访问日志的路径（健康检查由负载均衡频繁调用）
QUIET_PATHS = ("/health",)


def _base_fields(record: logging.LogRecord) -> Dict[str, Any]:
    return {
        "timestamp": datetime.fromtimestamp(record.created),
        "level": record.levelname,
        "logger": record.name,
        "function": record.funcName,
        "line": record.lineno,
        "message": record.getMessage(),
    }


class ColoredFormatter(logging.Formatter):
    """
    控制台格式：
    2025-03-01 10:00:00 | INFO     | app.approval.recorder:record_decision:160 - ...
    """

    def format(self, record: logging.LogRecord) -> str:
        fields = _base_fields(record)
        color = LEVEL_COLORS.get(record.levelname, RESET)
        location = f"{fields['logger']}:{fields['function']}:{fields['line']}"

        line = (
            f"{TIME_COLOR}{fields['timestamp']:%Y-%m-%d %H:%M:%S}{RESET} | "
            f"{color}{record.levelname:8}{RESET} | "
            f"{LOCATION_COLOR}{location}{RESET} - {fields['message']}"
        )
        extra = getattr(record, "extra_data", None)
        if extra:
            line += f" {extra}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class JSONFormatter(logging.Formatter):
    """每行一个 JSON 对象"""

    def format(self, record: logging.LogRecord) -> str:
        data = _base_fields(record)
        data["timestamp"] = data["timestamp"].isoformat()
        if record.exc_info:
            data["exception"] = self.formatException(record.exc_info)
        extra = getattr(record, "extra_data", None)
        if extra:
            data["extra"] = extra
        return json.dumps(data, ensure_ascii=False, default=str)


def setup_logging() -> None:
    """初始化根 logger，app/main.py 启动时调用一次"""
    root = logging.getLogger()
    root.setLevel(settings.LOG_LEVEL)
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(settings.LOG_LEVEL)
    handler.setFormatter(JSONFormatter() if settings.LOG_FORMAT == "json" else ColoredFormatter())
    root.addHandler(handler)

    # SQL 只在 DEBUG 下输出
    logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO if settings.DEBUG else logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("passlib").setLevel(logging.ERROR)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    请求日志中间件

    输出示例：
    POST /api/reviews/letter/xxx/decision -> 409 (12ms)

    4xx 记为 WARNING（包括审批校验失败和并发冲突），5xx 记为 ERROR
    """

    def __init__(self, app, logger: Optional[logging.Logger] = None):
        super().__init__(app)
        self.logger = logger or get_logger("app.request")

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        started = time.perf_counter()
        target = request.url.path
        if request.url.query:
            target += f"?{request.url.query}"

        try:
            response = await call_next(request)
        except Exception as e:
            elapsed = (time.perf_counter() - started) * 1000
            self.logger.error(f"{request.method} {target} -> 500 ({elapsed:.0f}ms) - {e}")
            raise

        if request.url.path in QUIET_PATHS:
            return response

        elapsed = (time.perf_counter() - started) * 1000
        message = f"{request.method} {target} -> {response.status_code} ({elapsed:.0f}ms)"
        if response.status_code >= 500:
            self.logger.error(message)
        elif response.status_code >= 400:
            self.logger.warning(message)
        else:
            self.logger.info(message)
        return response
