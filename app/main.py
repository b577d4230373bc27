# app/main.py
from fastapi import FastAPI
from app.core.config import settings
from app.core.logging_config import setup_logging
from app.db.base import Base
from app.db.session import engine
from app.api.v1.endpoints import health
from app import models  # noqa

app = FastAPI(title=settings.PROJECT_NAME)
app.state.scheduler = None


@app.on_event("startup")
def on_startup():
    setup_logging()
    Base.metadata.create_all(bind=engine)

    if settings.REVIEW_SCHEDULER_ENABLED:
        from app.workers.worker_main import build_scheduler

        app.state.scheduler = build_scheduler()
        app.state.scheduler.start()


@app.on_event("shutdown")
def on_shutdown():
    if app.state.scheduler is not None:
        app.state.scheduler.stop()
        app.state.scheduler = None


app.include_router(health.router, prefix="/api/v1/health", tags=["health"])
