import structlog
import uvicorn
from fastapi import FastAPI

from storefront.api.routes.admin_members import router as admin_members_router
from storefront.api.routes.admin_payouts import router as admin_payouts_router
from storefront.api.routes.admin_users import router as admin_users_router
from storefront.api.routes.affiliate_applications import router as affiliate_applications_router
from storefront.api.routes.health import router as health_router
from storefront.api.routes.payfast_webhook import router as payfast_webhook_router
from storefront.api.routes.paypal_webhook import router as paypal_webhook_router
from storefront.core.config import get_settings
from storefront.core.logging import configure_logging

logger = structlog.get_logger(__name__)


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Storefront Ledger API",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.include_router(health_router)
    app.include_router(paypal_webhook_router)
    app.include_router(payfast_webhook_router)
    app.include_router(affiliate_applications_router)
    app.include_router(admin_members_router)
    app.include_router(admin_payouts_router)
    app.include_router(admin_users_router)

    # PayFast ITNs carry no signature we verify; the source-IP allowlist is the only check.
    logger.warning(
        "payfast_itn_ip_allowlist_only",
        allowed_ranges=settings.payfast_allowed_ips,
    )
    return app


app = create_app()


def run() -> None:
    settings = get_settings()
    uvicorn.run(
        "storefront.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.app_env == "dev",
    )


if __name__ == "__main__":
    run()
