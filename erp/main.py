import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from erp import config
from erp.db import Base, engine
from erp.errors import ERPError

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("erp")

# 1) import every model before create_all() so the mapper knows all relations
import erp.models  # noqa: F401,E402

from sqlalchemy.orm import configure_mappers  # noqa: E402
configure_mappers()

# 2) create tables
Base.metadata.create_all(bind=engine)


# ==== FastAPI app ====
app = FastAPI(title=config.APP_NAME)


@app.exception_handler(ERPError)
async def erp_error_handler(request: Request, exc: ERPError):
    if exc.status_code >= 500:
        logger.error("%s %s: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


# ==== Routers ====
from erp.routers import customers, dashboard, finance, inventory, orders, payables  # noqa: E402
from erp.routers import payments, production, settings, whatsapp  # noqa: E402
app.include_router(orders.router)
app.include_router(production.router)
app.include_router(payments.router)
app.include_router(finance.router)
app.include_router(payables.router)
app.include_router(inventory.router)
app.include_router(customers.router)
app.include_router(settings.router)
app.include_router(whatsapp.router)
app.include_router(dashboard.router)


@app.get("/api/health")
def health():
    return {"status": "ok", "env": config.ENV}
