"""School-facing routes: licensed careers, class configuration and grading."""
import uuid
from datetime import datetime
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from careerhub.core.security import require_roles, school_id_of
from careerhub.db.sessions import get_db
from careerhub.models import User
from careerhub.models.user import ROLE_SCHOOL
from careerhub.routes.careers import CareerResponse
from careerhub.routes.licenses import LicenseResponse
from careerhub.routes.schools import ClassResponse
from careerhub.services import careers as career_service
from careerhub.services import exam_attempts as attempt_service
from careerhub.services import licenses as license_service
from careerhub.services import schools as school_service
from careerhub.utils.pagination import Paging, get_paging
from careerhub.utils.responses import ORMModel, api_response


router = APIRouter(prefix="/api/v2/schools", tags=["School Portal"])

school_only = require_roles(ROLE_SCHOOL)


class ActiveCareerResponse(BaseModel):
    career: CareerResponse
    license: LicenseResponse


class ClassCriteriaRequest(BaseModel):
    career_id: uuid.UUID
    criteria_ids: List[uuid.UUID]


class ClassCriteriaResponse(ORMModel):
    id: uuid.UUID
    class_id: uuid.UUID
    career_id: uuid.UUID
    criteria_id: uuid.UUID


class AnswerResponse(ORMModel):
    id: uuid.UUID
    question_id: uuid.UUID
    answer_data: Optional[Any]
    is_correct: Optional[bool]
    score: Optional[float]
    max_score: Optional[float]
    feedback: Optional[str]
    graded_at: Optional[datetime]


class AttemptResponse(ORMModel):
    id: uuid.UUID
    exam_id: uuid.UUID
    student_id: uuid.UUID
    status: str
    start_time: Optional[datetime]
    submit_time: Optional[datetime]
    duration_seconds: Optional[int]
    total_score: Optional[float]
    max_score: float
    is_auto_graded: bool
    graded_at: Optional[datetime]


class AttemptDetailResponse(AttemptResponse):
    answers: List[AnswerResponse]


class GradeAnswerRequest(BaseModel):
    earned_score: float = Field(ge=0)
    feedback: Optional[str] = None


@router.get("/careers")
def list_active_careers(
    paging: Paging = Depends(get_paging),
    db: Session = Depends(get_db),
    current_user: User = Depends(school_only),
):
    """Careers the school currently holds an active license for."""
    pairs, total = license_service.get_active_careers_for_school(db, school_id_of(current_user), paging)
    data = [
        ActiveCareerResponse(
            career=CareerResponse.model_validate(career),
            license=LicenseResponse.model_validate(license),
        )
        for career, license in pairs
    ]
    return api_response(data, "Get active careers successfully", paging.meta(total))


@router.get("/classes")
def list_classes(db: Session = Depends(get_db), current_user: User = Depends(school_only)):
    classes = school_service.list_classes(db, school_id_of(current_user))
    return api_response([ClassResponse.model_validate(c) for c in classes])


@router.put("/classes/{class_id}/criteria")
def configure_class_criteria(
    class_id: uuid.UUID,
    request: ClassCriteriaRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(school_only),
):
    configs = career_service.configure_class_criteria(
        db, school_id_of(current_user), class_id, request.career_id, request.criteria_ids
    )
    return api_response(
        [ClassCriteriaResponse.model_validate(c) for c in configs],
        "Class criteria configured successfully",
    )


@router.get("/classes/{class_id}/criteria")
def list_class_criteria(
    class_id: uuid.UUID,
    career_id: Optional[uuid.UUID] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(school_only),
):
    school_class = school_service.get_class(db, class_id)
    if school_class.school_id != school_id_of(current_user):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Class not found")
    configs = career_service.list_class_criteria(db, class_id, career_id)
    return api_response([ClassCriteriaResponse.model_validate(c) for c in configs])


@router.get("/attempts")
def list_attempts(
    exam_id: Optional[uuid.UUID] = None,
    attempt_status: Optional[str] = None,
    paging: Paging = Depends(get_paging),
    db: Session = Depends(get_db),
    current_user: User = Depends(school_only),
):
    attempts, total = attempt_service.list_attempts(
        db,
        paging,
        exam_id=exam_id,
        status=attempt_status,
        school_id=school_id_of(current_user),
    )
    return api_response(
        [AttemptResponse.model_validate(a) for a in attempts],
        "Get attempts successfully",
        paging.meta(total),
    )


@router.get("/attempts/{attempt_id}")
def get_attempt(
    attempt_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(school_only),
):
    attempt = attempt_service.get_attempt(db, attempt_id, school_id=school_id_of(current_user))
    return api_response(AttemptDetailResponse.model_validate(attempt))


@router.put("/answers/{answer_id}/grade")
def grade_answer(
    answer_id: uuid.UUID,
    request: GradeAnswerRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(school_only),
):
    answer = attempt_service.grade_answer(
        db,
        answer_id,
        request.earned_score,
        grader_id=current_user.id,
        feedback=request.feedback,
        school_id=school_id_of(current_user),
    )
    return api_response(AnswerResponse.model_validate(answer), "Answer graded successfully")
