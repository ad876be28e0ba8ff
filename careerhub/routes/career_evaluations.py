"""Career suitability evaluation: school configuration and student submissions."""
import uuid
from datetime import datetime
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from careerhub.core.security import require_roles, school_id_of
from careerhub.db.sessions import get_db
from careerhub.models import User
from careerhub.models.user import ROLE_SCHOOL, ROLE_STUDENT
from careerhub.services import career_evaluations as evaluation_service
from careerhub.utils.responses import ORMModel, api_response


router = APIRouter(prefix="/api/v2/students/career-evaluations", tags=["Student Career Evaluations"])
config_router = APIRouter(prefix="/api/v2/schools/career-evaluation-config", tags=["Career Evaluation Config"])

student_only = require_roles(ROLE_STUDENT)
school_only = require_roles(ROLE_SCHOOL)


class CriteriaWeightItem(BaseModel):
    criteria_id: uuid.UUID
    weight: float = Field(ge=0, le=100)


class CriteriaWeightsRequest(BaseModel):
    class_id: uuid.UUID
    career_id: uuid.UUID
    weights: List[CriteriaWeightItem] = Field(min_length=1)


class CriteriaWeightResponse(ORMModel):
    id: uuid.UUID
    criteria_id: uuid.UUID
    weight: float


class CriteriaWeightsResponse(BaseModel):
    class_id: uuid.UUID
    career_id: uuid.UUID
    weights: List[CriteriaWeightResponse]
    total_weight: float
    is_valid: bool


class ThresholdsRequest(BaseModel):
    class_id: uuid.UUID
    career_id: uuid.UUID
    very_suitable_min: float = Field(ge=0)
    suitable_min: float = Field(ge=0)


class ThresholdResponse(ORMModel):
    id: uuid.UUID
    class_id: uuid.UUID
    career_id: uuid.UUID
    max_score: float
    very_suitable_min: float
    suitable_min: float
    updated_at: Optional[datetime]


class CriteriaScore(BaseModel):
    criteria_id: uuid.UUID
    score: float = Field(ge=0, le=100)


class SubmitEvaluationRequest(BaseModel):
    class_id: uuid.UUID
    career_id: uuid.UUID
    scores: List[CriteriaScore]


class EvaluationResponse(ORMModel):
    id: uuid.UUID
    student_id: uuid.UUID
    class_id: uuid.UUID
    career_id: uuid.UUID
    raw_scores: List[Any]
    weighted_score: float
    max_score: float
    percentage: float
    evaluation_result: str
    evaluated_at: Optional[datetime]


class SubmittedEvaluationResponse(EvaluationResponse):
    breakdown: dict


class DetailedScore(BaseModel):
    criteria_id: str
    raw_score: float
    weight: Optional[float]
    weighted_score: float


class EvaluationResultResponse(EvaluationResponse):
    detailed_scores: List[DetailedScore]


# School configuration

@config_router.post("/weights")
def configure_weights(
    request: CriteriaWeightsRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(school_only),
):
    rows = evaluation_service.configure_criteria_weights(
        db,
        school_id_of(current_user),
        request.class_id,
        request.career_id,
        [item.model_dump() for item in request.weights],
        created_by=current_user.id,
    )
    return api_response(
        [CriteriaWeightResponse.model_validate(row) for row in rows],
        "Criteria weights configured successfully",
    )


@config_router.get("/weights")
def get_weights(
    class_id: uuid.UUID,
    career_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(school_only),
):
    data = evaluation_service.get_criteria_weights(db, school_id_of(current_user), class_id, career_id)
    data["weights"] = [CriteriaWeightResponse.model_validate(w) for w in data["weights"]]
    return api_response(CriteriaWeightsResponse(**data))


@config_router.post("/thresholds")
def configure_thresholds(
    request: ThresholdsRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(school_only),
):
    threshold = evaluation_service.configure_evaluation_thresholds(
        db,
        school_id_of(current_user),
        request.class_id,
        request.career_id,
        request.very_suitable_min,
        request.suitable_min,
        created_by=current_user.id,
    )
    return api_response(ThresholdResponse.model_validate(threshold), "Evaluation thresholds configured successfully")


@config_router.get("/thresholds")
def get_thresholds(
    class_id: uuid.UUID,
    career_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(school_only),
):
    threshold = evaluation_service.get_evaluation_thresholds(db, school_id_of(current_user), class_id, career_id)
    return api_response(ThresholdResponse.model_validate(threshold) if threshold else None)


@config_router.get("/statistics")
def get_statistics(
    class_id: uuid.UUID,
    career_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(school_only),
):
    data = evaluation_service.get_evaluation_statistics(db, school_id_of(current_user), class_id, career_id)
    return api_response(data, "Get evaluation statistics successfully")


# Student submissions

@router.post("/submit", status_code=status.HTTP_201_CREATED)
def submit_evaluation(
    request: SubmitEvaluationRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(student_only),
):
    evaluation, breakdown = evaluation_service.submit_career_evaluation(
        db,
        current_user,
        request.class_id,
        request.career_id,
        [item.model_dump() for item in request.scores],
    )
    data = SubmittedEvaluationResponse(
        **EvaluationResponse.model_validate(evaluation).model_dump(),
        breakdown=breakdown,
    )
    return api_response(data, "Career evaluation submitted successfully")


@router.get("/results")
def list_my_results(
    career_id: Optional[uuid.UUID] = None,
    class_id: Optional[uuid.UUID] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(student_only),
):
    evaluations = evaluation_service.list_my_evaluations(db, current_user.id, career_id, class_id)
    data = [
        EvaluationResultResponse(
            **EvaluationResponse.model_validate(e).model_dump(),
            detailed_scores=evaluation_service.detailed_scores(db, e),
        )
        for e in evaluations
    ]
    return api_response(data, "Get evaluation results successfully")
