# app/main.py
# FastAPI 应用入口
#
#   uvicorn app.main:app --reload --host 0.0.0.0 --port 8000
#
# 审批引擎的领域异常在这里统一翻译成 HTTP 响应：
#   EntityNotFound → 404    NotARecipient / RoleMismatch / AccessDenied → 403
#   CommentRequired / InvalidRecipients / InvalidApprovedMembers → 400
#   ConcurrentWriteConflict（重试耗尽）/ DuplicateEntity → 409
# 数据库表由 Alembic 管理（alembic upgrade head），启动时不建表。

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api import admin, auth, collections, health, letters, profiles, reviews
from app.approval.errors import (
    AccessDenied,
    ApprovalError,
    CommentRequired,
    ConcurrentWriteConflict,
    DuplicateEntity,
    EntityNotFound,
    InvalidApprovedMembers,
    InvalidRecipients,
    NotARecipient,
    RoleMismatch,
)
from app.core.config import settings
from app.core.database import close_db
from app.core.logging import RequestLoggingMiddleware, get_logger, setup_logging
from app.services.approval_service import AlreadyExists, EmailDomainNotAllowed

setup_logging()

logger = get_logger(__name__)

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"{settings.APP_NAME} {VERSION} 启动，档案审核席位: {settings.PROFILE_REVIEWERS}")
    yield
    try:
        await close_db()
    except Exception as e:
        logger.warning(f"关闭数据库连接失败: {e}")
    logger.info(f"{settings.APP_NAME} 已停止")


app = FastAPI(
    title=settings.APP_NAME,
    description=(
        "社团档案与信函的多方审批。\n\n"
        "先调用 `/api/auth/login` 拿 Token，再带上 `Authorization: Bearer <token>`。"
    ),
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)


# ==================== 异常 → 响应 ====================

# 出错响应绕过了 CORSMiddleware 时也要带上这些头
CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Credentials": "true",
}

# 席位相关的拒绝统一成一条提示，不透露哪些席位合法
NOT_AUTHORIZED = {"detail": "无权审核该对象", "code": "not_authorized"}

APPROVAL_STATUS_CODES = (
    (EntityNotFound, status.HTTP_404_NOT_FOUND),
    ((NotARecipient, RoleMismatch, AccessDenied), status.HTTP_403_FORBIDDEN),
    ((CommentRequired, InvalidRecipients, InvalidApprovedMembers), status.HTTP_400_BAD_REQUEST),
    ((ConcurrentWriteConflict, DuplicateEntity), status.HTTP_409_CONFLICT),
)


def _json(status_code: int, content) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=content, headers=CORS_HEADERS)


def approval_error_response(exc: ApprovalError) -> JSONResponse:
    status_code = next(
        (code for types, code in APPROVAL_STATUS_CODES if isinstance(exc, types)),
        status.HTTP_400_BAD_REQUEST,
    )
    if isinstance(exc, (NotARecipient, RoleMismatch)):
        logger.warning(f"[Reviews] 席位校验失败: {exc.message}")
        return _json(status_code, NOT_AUTHORIZED)
    return _json(status_code, {"detail": exc.message, "code": exc.code})


@app.exception_handler(ApprovalError)
async def approval_exception_handler(request: Request, exc: ApprovalError):
    return approval_error_response(exc)


@app.exception_handler(EmailDomainNotAllowed)
async def email_domain_exception_handler(request: Request, exc: EmailDomainNotAllowed):
    return _json(status.HTTP_400_BAD_REQUEST, {"detail": str(exc)})


@app.exception_handler(AlreadyExists)
async def already_exists_exception_handler(request: Request, exc: AlreadyExists):
    return _json(status.HTTP_409_CONFLICT, {"detail": str(exc)})


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers={**CORS_HEADERS, **(exc.headers or {})},
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return _json(status.HTTP_422_UNPROCESSABLE_ENTITY, {"detail": jsonable_encoder(exc.errors())})


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.exception(f"未处理的异常: {type(exc).__name__}: {exc}")
    return _json(status.HTTP_500_INTERNAL_SERVER_ERROR, {"detail": "服务器内部错误"})


# ==================== 路由 ====================

for module in (health, auth, admin, profiles, collections, letters, reviews):
    app.include_router(module.router)


@app.get("/", tags=["Root"])
async def root():
    return {"app": settings.APP_NAME, "version": VERSION, "docs": "/docs"}
