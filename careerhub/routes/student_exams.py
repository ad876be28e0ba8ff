"""Student exam routes: browse, start and submit attempts."""
import uuid
from datetime import datetime
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from careerhub.core.security import require_roles, school_id_of
from careerhub.db.sessions import get_db
from careerhub.models import User
from careerhub.models.user import ROLE_STUDENT
from careerhub.routes.school_portal import AttemptDetailResponse, AttemptResponse
from careerhub.services import exam_attempts as attempt_service
from careerhub.services import exams as exam_service
from careerhub.utils.pagination import Paging, get_paging
from careerhub.utils.responses import ORMModel, api_response


router = APIRouter(prefix="/api/v2/students/exams", tags=["Student Exams"])

student_only = require_roles(ROLE_STUDENT)


class StudentExamResponse(ORMModel):
    id: uuid.UUID
    title: str
    description: Optional[str]
    career_id: Optional[uuid.UUID]
    time_limit_minutes: Optional[int]
    total_points: float
    pass_score: Optional[float]
    created_at: datetime


# Options and questions shown while sitting an exam carry no answer key
class PublicOptionResponse(ORMModel):
    id: uuid.UUID
    option_key: str
    option_text: str
    order_index: int


class PublicQuestionResponse(ORMModel):
    id: uuid.UUID
    content: str
    question_type: str
    difficulty_level: str
    options: List[PublicOptionResponse]


class AttemptQuestionResponse(ORMModel):
    order_index: int
    points: float
    question: PublicQuestionResponse


class StartAttemptResponse(BaseModel):
    attempt: AttemptResponse
    questions: List[AttemptQuestionResponse]


class AnswerItem(BaseModel):
    question_id: uuid.UUID
    answer_data: Optional[Any] = None


class SubmitAttemptRequest(BaseModel):
    answers: List[AnswerItem] = []


@router.get("")
def list_available_exams(
    paging: Paging = Depends(get_paging),
    db: Session = Depends(get_db),
    current_user: User = Depends(student_only),
):
    exams, total = exam_service.list_available_exams(db, school_id_of(current_user), paging)
    return api_response(
        [StudentExamResponse.model_validate(e) for e in exams],
        "Get exams successfully",
        paging.meta(total),
    )


@router.get("/attempts")
def list_my_attempts(
    exam_id: Optional[uuid.UUID] = None,
    paging: Paging = Depends(get_paging),
    db: Session = Depends(get_db),
    current_user: User = Depends(student_only),
):
    attempts, total = attempt_service.list_attempts(
        db, paging, exam_id=exam_id, student_id=current_user.id
    )
    return api_response(
        [AttemptResponse.model_validate(a) for a in attempts],
        "Get attempts successfully",
        paging.meta(total),
    )


@router.get("/attempts/{attempt_id}")
def get_my_attempt(
    attempt_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(student_only),
):
    attempt = attempt_service.get_attempt(db, attempt_id, student_id=current_user.id)
    return api_response(AttemptDetailResponse.model_validate(attempt))


@router.post("/{exam_id}/start", status_code=status.HTTP_201_CREATED)
def start_attempt(
    exam_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(student_only),
):
    """Start (or resume) an attempt. Correct answers are never included."""
    exam_service.ensure_exam_available(db, exam_id, school_id_of(current_user))
    attempt, exam_questions = attempt_service.start_attempt(db, exam_id, current_user.id)
    data = StartAttemptResponse(
        attempt=AttemptResponse.model_validate(attempt),
        questions=[AttemptQuestionResponse.model_validate(eq) for eq in exam_questions],
    )
    return api_response(data, "Exam attempt started")


@router.post("/attempts/{attempt_id}/submit")
def submit_attempt(
    attempt_id: uuid.UUID,
    request: SubmitAttemptRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(student_only),
):
    attempt = attempt_service.submit_attempt(
        db,
        attempt_id,
        current_user.id,
        [answer.model_dump() for answer in request.answers],
    )
    return api_response(AttemptResponse.model_validate(attempt), "Exam submitted successfully")
