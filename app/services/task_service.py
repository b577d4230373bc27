# app/services/task_service.py
from typing import List, Optional

from sqlalchemy.orm import Session

from app.models.task import Task, TaskCriterion


def get_task(db: Session, task_id: int) -> Optional[Task]:
    return db.get(Task, task_id)


def list_criteria(db: Session, task_id: int) -> List[TaskCriterion]:
    """
    Criteria of a task in the order they were added.
    """
    return (
        db.query(TaskCriterion)
        .filter(TaskCriterion.task_id == task_id)
        .order_by(TaskCriterion.created_at.asc(), TaskCriterion.id.asc())
        .all()
    )
