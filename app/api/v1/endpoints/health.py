# app/api/v1/endpoints/health.py
from fastapi import APIRouter, Depends, Request
from sqlalchemy import text
from sqlalchemy.orm import Session

from app.db.session import get_db

router = APIRouter(tags=["health"])


@router.get("/live")
def liveness_probe():
    return {"status": "ok"}


@router.get("/db")
def db_health(db: Session = Depends(get_db)):
    db.execute(text("SELECT 1"))
    return {"status": "ok"}


@router.get("/scheduler")
def scheduler_health(request: Request):
    scheduler = getattr(request.app.state, "scheduler", None)
    if scheduler is None:
        return {"status": "disabled", "running": False}
    return {"status": "ok" if scheduler.is_running else "stopped", "running": scheduler.is_running}
