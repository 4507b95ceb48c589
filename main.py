"""
FastAPI应用主入口
"""
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.middleware import LoggingMiddleware, RequestIDMiddleware
from api.routes import cart, checkout, customers, metrics, products, transactions
from core.config import Settings, settings as default_settings
from core.exceptions import register_exception_handlers
from core.logging_config import configure_logging, get_logger
from core.response import success_response
from infrastructure.container import Container


logger = get_logger(__name__)


def create_app(app_settings: Optional[Settings] = None, container: Optional[Container] = None) -> FastAPI:
    """构建应用；测试中可传入自定义配置或容器"""
    cfg = app_settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """应用生命周期管理"""
        app.state.container = container or Container(cfg)
        await app.state.container.startup()
        logger.info("application_started", environment=cfg.ENVIRONMENT)
        yield
        await app.state.container.shutdown()
        logger.info("application_shutdown")

    app = FastAPI(
        title=cfg.PROJECT_NAME,
        version=cfg.VERSION,
        debug=cfg.DEBUG,
        lifespan=lifespan,
        description="电商结账编排引擎：支付装饰器链、支付策略、重试与库存回滚、事件通知",
    )

    # 中间件执行顺序：从下往上
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    for module in (products, customers, cart, checkout, transactions, metrics):
        app.include_router(module.router, prefix="/api/v1")

    @app.get("/", tags=["Root"])
    async def root():
        return success_response(
            data={"name": cfg.PROJECT_NAME, "version": cfg.VERSION, "docs": "/docs"},
            message="Welcome",
        )

    @app.get("/health", tags=["Health"])
    async def health_check():
        """健康检查端点"""
        return success_response(data={"status": "healthy"}, message="OK")

    return app


# 初始化日志：在入口处显式配置，避免模块导入时的副作用
configure_logging(default_settings.logging.level, default_settings.logging.format)
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=default_settings.DEBUG,
        log_level="debug" if default_settings.DEBUG else "info"
    )
