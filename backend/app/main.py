from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.config import settings
from core.database import close_client
from core.exceptions import register_exception_handlers
from app.startup import configure_logging, run_startup_checks

# ========== Reporting & Analytics ==========
from modules.reporting import __version__
from modules.reporting.routers import analytics_router, reports_router

configure_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    await run_startup_checks()
    yield
    close_client()


app = FastAPI(
    title="Inventory Reporting API",
    description="Reports, exports and analytics over inventory, sales and purchasing data",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "OPTIONS"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(reports_router)
app.include_router(analytics_router)


@app.get("/health")
def health():
    return {"status": "ok", "environment": settings.environment, "version": __version__}
