"""Student learning progress routes."""
import uuid
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, Field
from pydantic import ValidationError as PayloadError
from sqlalchemy.orm import Session

from careerhub.core.security import require_roles
from careerhub.db.sessions import get_db
from careerhub.models import User
from careerhub.models.user import ROLE_STUDENT
from careerhub.services import learning as learning_service
from careerhub.utils.responses import ORMModel, api_response


router = APIRouter(prefix="/api/v2/students/learning", tags=["Student Learning"])

student_only = require_roles(ROLE_STUDENT)


class LearningProgressRequest(BaseModel):
    career_id: uuid.UUID
    criteria_id: uuid.UUID
    current_time: Optional[float] = Field(default=None, ge=0)
    last_watched_position: Optional[float] = Field(default=None, ge=0)
    status: str


class LearningProgressResponse(ORMModel):
    id: uuid.UUID
    career_id: uuid.UUID
    criteria_id: uuid.UUID
    video_duration: Optional[float]
    last_watched_position: Optional[float]
    progress_percent: float
    status: str
    updated_at: Optional[datetime]


@router.post("")
async def record_learning(
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(student_only),
):
    """
    Record video progress for a criteria.

    Accepts a JSON object or the player's plain-text report
    `career_id,criteria_id,current_time,last_watched_position,status`.
    """
    body = await request.body()
    if request.headers.get("content-type", "").startswith("application/json"):
        try:
            data = LearningProgressRequest.model_validate_json(body).model_dump()
        except PayloadError as exc:
            raise RequestValidationError(exc.errors())
    else:
        data = learning_service.parse_learning_payload(body.decode("utf-8", errors="replace"))

    progress = learning_service.upsert_learning_progress(db, current_user.id, **data)
    return api_response(LearningProgressResponse.model_validate(progress), "Learning progress recorded")


@router.get("/completed")
def list_completed_criteria(
    career_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(student_only),
):
    records = learning_service.list_completed_criteria(db, current_user.id, career_id)
    return api_response([LearningProgressResponse.model_validate(r) for r in records])
