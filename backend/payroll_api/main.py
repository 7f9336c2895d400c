"""FastAPI application entry point."""
import argparse
import logging

import uvicorn
from fastapi import FastAPI

from . import models
from .config import get_settings
from .auth import router as auth_router
from .database import engine
from .errors import register_exception_handlers
from .routers.benefits import router as benefits_router
from .routers.deductions import router as deductions_router
from .routers.employees import defaults_router, router as employees_router
from .routers.org_chart import departments_router, lines_router, sections_router
from .routers.overtimes import router as overtimes_router
from .routers.payroll import finals_router, summaries_router

logger = logging.getLogger(__name__)

app = FastAPI(title="Payroll Admin Backend", version="0.1.0")
register_exception_handlers(app)
app.include_router(auth_router)
app.include_router(employees_router)
app.include_router(defaults_router)
app.include_router(deductions_router)
app.include_router(benefits_router)
app.include_router(departments_router)
app.include_router(lines_router)
app.include_router(sections_router)
app.include_router(overtimes_router)
app.include_router(summaries_router)
app.include_router(finals_router)


@app.on_event("startup")
async def on_startup() -> None:
    """Ensure database tables exist."""

    async with engine.begin() as conn:
        await conn.run_sync(models.Base.metadata.create_all)
    logger.info("Database schema ready")


@app.get("/health", tags=["system"])
async def healthcheck() -> dict[str, str]:
    """Liveness check for uptime monitors."""

    return {"status": "ok"}


def run(argv: list[str] | None = None) -> None:
    """Serve the API with uvicorn; host and port default to API_HOST/API_PORT."""

    settings = get_settings()
    parser = argparse.ArgumentParser(prog="payroll-api", description="Payroll Admin backend")
    parser.add_argument("--host", default=settings.host)
    parser.add_argument("--port", type=int, default=settings.port)
    parser.add_argument("--reload", action="store_true", help="restart on code changes")
    parser.add_argument("--log-level", default="info")
    args = parser.parse_args(argv)

    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    logger.info("Serving payroll API on %s:%s", args.host, args.port)
    uvicorn.run(
        "payroll_api.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=args.log_level.lower(),
    )
