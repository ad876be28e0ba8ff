"""Exam administration routes, including question generation."""
import uuid
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from careerhub.core.security import require_roles
from careerhub.db.sessions import get_db
from careerhub.models import User
from careerhub.models.user import ROLE_ADMIN
from careerhub.routes.questions import (
    DIFFICULTY_PATTERN,
    QUESTION_TYPE_PATTERN,
    QuestionResponse,
)
from careerhub.services import exams as exam_service
from careerhub.services.exam_allocator import (
    delete_exam_questions,
    generate_exam_questions as allocate_questions,
    list_exam_questions,
)
from careerhub.utils.pagination import Paging, get_paging
from careerhub.utils.responses import ORMModel, api_response


router = APIRouter(prefix="/api/v1/exams", tags=["Exams"])

admin_only = require_roles(ROLE_ADMIN)


class DistributionRequest(BaseModel):
    category_id: Optional[uuid.UUID] = None
    career_criteria_id: Optional[uuid.UUID] = None
    question_type: Optional[str] = Field(default=None, pattern=QUESTION_TYPE_PATTERN)
    difficulty_level: Optional[str] = Field(default=None, pattern=DIFFICULTY_PATTERN)
    quantity: int = Field(gt=0)
    easy_count: int = Field(default=0, ge=0)
    medium_count: int = Field(default=0, ge=0)
    hard_count: int = Field(default=0, ge=0)
    points_per_question: float = Field(default=1, ge=0)
    order_index: Optional[int] = None


class ExamCreateRequest(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    career_id: Optional[uuid.UUID] = None
    career_criteria_id: Optional[uuid.UUID] = None
    time_limit_minutes: Optional[int] = Field(default=None, gt=0)
    total_points: float = Field(default=10, gt=0)
    pass_score: Optional[float] = Field(default=None, ge=0)
    distributions: List[DistributionRequest] = Field(min_length=1)


class ExamUpdateRequest(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    career_id: Optional[uuid.UUID] = None
    career_criteria_id: Optional[uuid.UUID] = None
    time_limit_minutes: Optional[int] = Field(default=None, gt=0)
    total_points: Optional[float] = Field(default=None, gt=0)
    pass_score: Optional[float] = Field(default=None, ge=0)
    distributions: Optional[List[DistributionRequest]] = None


class DistributionResponse(ORMModel):
    id: uuid.UUID
    category_id: Optional[uuid.UUID]
    career_criteria_id: Optional[uuid.UUID]
    question_type: Optional[str]
    difficulty_level: Optional[str]
    quantity: int
    easy_count: int
    medium_count: int
    hard_count: int
    points_per_question: float
    order_index: int


class ExamResponse(ORMModel):
    id: uuid.UUID
    title: str
    description: Optional[str]
    career_id: Optional[uuid.UUID]
    career_criteria_id: Optional[uuid.UUID]
    time_limit_minutes: Optional[int]
    total_points: float
    pass_score: Optional[float]
    created_at: datetime
    distributions: List[DistributionResponse]


class ExamQuestionResponse(ORMModel):
    id: uuid.UUID
    question_id: uuid.UUID
    order_index: int
    points: float
    question: QuestionResponse


def _exam_payload(request: BaseModel) -> dict:
    data = request.model_dump(exclude_unset=True)
    if request.distributions is not None:
        data["distributions"] = [d.model_dump() for d in request.distributions]
    return data


@router.post("", status_code=status.HTTP_201_CREATED)
def create_exam(
    request: ExamCreateRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(admin_only),
):
    exam = exam_service.create_exam(db, _exam_payload(request), created_by=current_user.id)
    return api_response(ExamResponse.model_validate(exam), "Exam created successfully")


@router.get("", dependencies=[Depends(admin_only)])
def list_exams(
    career_id: Optional[uuid.UUID] = None,
    search: Optional[str] = None,
    paging: Paging = Depends(get_paging),
    db: Session = Depends(get_db),
):
    exams, total = exam_service.list_exams(db, paging, career_id=career_id, search=search)
    return api_response(
        [ExamResponse.model_validate(e) for e in exams],
        "Get exams successfully",
        paging.meta(total),
    )


@router.get("/{exam_id}", dependencies=[Depends(admin_only)])
def get_exam(exam_id: uuid.UUID, db: Session = Depends(get_db)):
    exam = exam_service.get_exam(db, exam_id)
    return api_response(ExamResponse.model_validate(exam))


@router.put("/{exam_id}", dependencies=[Depends(admin_only)])
def update_exam(exam_id: uuid.UUID, request: ExamUpdateRequest, db: Session = Depends(get_db)):
    exam = exam_service.update_exam(db, exam_id, _exam_payload(request))
    return api_response(ExamResponse.model_validate(exam), "Exam updated successfully")


@router.delete("/{exam_id}", dependencies=[Depends(admin_only)])
def delete_exam(exam_id: uuid.UUID, db: Session = Depends(get_db)):
    exam_service.delete_exam(db, exam_id)
    return api_response(None, "Exam deleted successfully")


@router.post("/{exam_id}/questions/generate", status_code=status.HTTP_201_CREATED, dependencies=[Depends(admin_only)])
def generate_exam_questions(exam_id: uuid.UUID, db: Session = Depends(get_db)):
    """
    Select questions for every distribution of the exam.

    Fails with 400 when a distribution's candidate pool is too small and with
    409 when questions were already generated; nothing is written in either
    case.
    """
    count = allocate_questions(db, exam_id)
    return api_response({"generated": count}, f"Generated {count} questions successfully")


@router.get("/{exam_id}/questions", dependencies=[Depends(admin_only)])
def get_exam_questions(exam_id: uuid.UUID, db: Session = Depends(get_db)):
    exam_questions = list_exam_questions(db, exam_id)
    return api_response([ExamQuestionResponse.model_validate(eq) for eq in exam_questions])


@router.delete("/{exam_id}/questions", dependencies=[Depends(admin_only)])
def remove_exam_questions(exam_id: uuid.UUID, db: Session = Depends(get_db)):
    deleted = delete_exam_questions(db, exam_id)
    return api_response({"deleted": deleted}, "Exam questions deleted successfully")
