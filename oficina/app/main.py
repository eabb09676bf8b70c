from fastapi import FastAPI

from oficina.app.api.v1.router import router as v1_router
from oficina.app.core.config import get_settings
from oficina.app.core.logging import configure_logging

configure_logging(get_settings().log_level)

app = FastAPI(title="OFICINA", version="0.1.0")
app.include_router(v1_router, prefix="/v1")
