from fastapi import APIRouter

from oficina.app.api.v1.endpoints.health import router as health_router
from oficina.app.api.v1.endpoints.auth import router as auth_router
from oficina.app.api.v1.endpoints.orders import router as orders_router
from oficina.app.api.v1.endpoints.products import router as products_router
from oficina.app.api.v1.endpoints.finance import router as finance_router
from oficina.app.api.v1.endpoints.realized_services import router as realized_router
from oficina.app.api.v1.endpoints.reports import router as reports_router

router = APIRouter()
router.include_router(health_router, tags=["health"])
router.include_router(auth_router, tags=["auth"])
router.include_router(orders_router, tags=["orders"])
router.include_router(products_router, tags=["products"])
router.include_router(finance_router, tags=["finance"])
router.include_router(realized_router, tags=["realized-services"])
router.include_router(reports_router, tags=["reports"])
