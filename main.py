"""
FastAPI应用主入口
"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from typing import Optional

from api.routes import enrollments as enrollments_routes
from api.routes import masterclasses as masterclasses_routes
from api.routes import payments as payments_routes
from api.middleware import RequestIDMiddleware, LoggingMiddleware
from core.config import settings
from core.exceptions import register_exception_handlers
from core.response import success_response
from core.settings import payment_settings
from core.logging_config import get_logger, configure_logging
from domain.enrollment.reference import ReferenceCodec
from infrastructure.database import create_tables, dispose_engine
from infrastructure.external.catalog import (
    CalendarMasterclassCatalog,
    CompositeProductCatalog,
    GoogleCalendarClient,
)
from infrastructure.external.payments import build_payment_gateways
from infrastructure.notifications import CeleryEnrollmentNotifier, LoggingEnrollmentNotifier
from infrastructure.tasks.utils.dispatcher import TaskDispatcher
from infrastructure.unit_of_work import SQLAlchemyUnitOfWork


# 初始化日志：在入口处显式配置，避免模块导入时的副作用
configure_logging()
logger = get_logger(__name__)


def _build_masterclass_catalog() -> Optional[CalendarMasterclassCatalog]:
    masterclasses = None
    if settings.calendar.enabled:
        client = GoogleCalendarClient(settings.calendar.calendar_id, settings.calendar.credentials_file)
        masterclasses = CalendarMasterclassCatalog(
            client,
            timeout=settings.calendar.timeout_seconds,
            default_currency=settings.calendar.default_currency,
            listing_query=settings.calendar.listing_query,
            horizon_days=settings.calendar.listing_horizon_days,
            max_results=settings.calendar.listing_max_results,
        )
    else:
        logger.warning("calendar_catalog_disabled", message="CALENDAR__CALENDAR_ID / CALENDAR__CREDENTIALS_FILE not set")
    return masterclasses


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    # 启动时创建数据库表（仅开发环境）。生产应使用 Alembic 迁移
    if settings.DEBUG:
        await create_tables()
        logger.info("database_initialized", message="Database tables created (development)")
    else:
        logger.info(
            "database_migrations_required",
            message="No auto-create in production, use Alembic migrations (alembic upgrade head)"
        )

    # 支付网关在启动时一次性创建，缺少凭据直接启动失败
    gateways = build_payment_gateways(payment_settings, host=settings.APP_BASE_URL)
    app.state.payment_gateways = gateways
    logger.info("payment_gateways_initialized", providers=[p.value for p in gateways])

    app.state.codec = ReferenceCodec(
        user_id_marker=settings.reference.user_id_marker,
        max_length=settings.reference.max_length,
    )
    app.state.masterclasses = _build_masterclass_catalog()
    app.state.catalog = CompositeProductCatalog(SQLAlchemyUnitOfWork, app.state.masterclasses)
    app.state.invite_dispatcher = TaskDispatcher()
    if settings.redis.url:
        app.state.notifier = CeleryEnrollmentNotifier()
        logger.info("enrollment_notifier_selected", notifier="celery")
    else:
        app.state.notifier = LoggingEnrollmentNotifier()
        logger.info("enrollment_notifier_selected", notifier="logging")

    yield
    # 关闭时的清理工作
    for gateway in gateways.values():
        await gateway.aclose()
    await dispose_engine()
    logger.info("application_shutdown", message="Application shutdown")


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    debug=settings.DEBUG,
    lifespan=lifespan,
    description="课程与大师课支付回调对账、报名服务",
    redoc_url="/redoc",
)

# 添加中间件（注意顺序：从下往上执行）
# 1. Request ID中间件（最先执行，为后续中间件提供request_id）
app.add_middleware(RequestIDMiddleware)

# 2. 日志中间件（依赖request_id）
app.add_middleware(LoggingMiddleware)

# 3. CORS中间件
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 注册全局异常处理器
register_exception_handlers(app)


# 注册路由
app.include_router(payments_routes.router, prefix="/api/v1")
app.include_router(enrollments_routes.router, prefix="/api/v1")
app.include_router(masterclasses_routes.router, prefix="/api/v1")


# 根路径
@app.get("/", tags=["Root"])
async def root():
    """API根路径"""
    return success_response(
        data={
            "name": settings.PROJECT_NAME,
            "version": settings.VERSION,
            "docs": "/docs",
            "redoc": "/redoc"
        },
        message="Welcome"
    )


# 健康检查
@app.get("/health", tags=["Health"])
async def health_check():
    """健康检查端点"""
    return success_response(data={"status": "healthy"}, message="OK")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level="debug" if settings.DEBUG else "info"
    )
