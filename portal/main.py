import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.responses import Response

from portal.api.admin import router as admin_router
from portal.api.admin_auth import router as admin_auth_router
from portal.api.calendar import router as calendar_router
from portal.api.faq import router as faq_router
from portal.api.submissions import router as submissions_router
from portal.api.uploader_auth import router as uploader_auth_router
from portal.config import settings
from portal.db import SessionLocal, engine, run_migrations, wait_for_database
from portal.errors import register_error_handlers
from portal.logging import configure_logging
from portal.observability import ObservabilityMiddleware, SecurityHeadersMiddleware
from portal.services.auth_provider import get_auth_provider, seed_admin_user
from portal.services.storage import LocalStorage
from portal.tasks.cleanup import run_cleanup

logger = logging.getLogger(__name__)


async def _cleanup_loop(interval_seconds: int) -> None:
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            await asyncio.to_thread(run_cleanup)
        except Exception:
            logger.exception("Background cleanup failed")


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.auth_provider = get_auth_provider(settings.auth_provider)
    wait_for_database(engine)
    if settings.run_migrations:
        run_migrations()

    storage = LocalStorage(settings.upload_dir)
    storage.ensure_writable()
    app.state.storage = storage

    db = SessionLocal()
    try:
        seed_admin_user(
            db,
            settings.admin_username,
            settings.admin_password,
            settings.admin_email,
            settings.admin_display_name,
        )
    finally:
        db.close()

    cleanup_task = None
    if settings.cleanup_scheduler == "inprocess":
        cleanup_task = asyncio.create_task(
            _cleanup_loop(settings.cleanup_interval_seconds)
        )
    logger.info(
        "Submission portal started (environment=%s, upload_dir=%s)",
        settings.environment,
        storage.root,
    )
    try:
        yield
    finally:
        if cleanup_task is not None:
            cleanup_task.cancel()
            try:
                await cleanup_task
            except asyncio.CancelledError:
                pass


configure_logging()
app = FastAPI(title="Submission Portal API", lifespan=lifespan)

if settings.is_production:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type"],
    )
else:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
app.add_middleware(SecurityHeadersMiddleware, is_production=settings.is_production)
app.add_middleware(ObservabilityMiddleware)
register_error_handlers(app)

app.include_router(submissions_router)
app.include_router(calendar_router)
app.include_router(faq_router)
app.include_router(admin_auth_router)
app.include_router(admin_router)
app.include_router(uploader_auth_router)


@app.get("/health")
def health_check():
    return {"status": "ok"}


@app.get("/metrics")
def metrics():
    data = generate_latest()
    return Response(content=data, media_type=CONTENT_TYPE_LATEST)


if settings.frontend_dir and Path(settings.frontend_dir).is_dir():
    app.mount(
        "/", StaticFiles(directory=settings.frontend_dir, html=True), name="frontend"
    )
