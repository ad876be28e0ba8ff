"""Question bank routes."""
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
from careerhub.services import questions as question_service
from careerhub.utils.pagination import Paging, get_paging
from careerhub.utils.responses import ORMModel, api_response


router = APIRouter(prefix="/api/v1", tags=["Questions"])

admin_only = require_roles(ROLE_ADMIN)

QUESTION_TYPE_PATTERN = "^(MULTIPLE_CHOICE|TRUE_FALSE|SHORT_ANSWER|ESSAY)$"
DIFFICULTY_PATTERN = "^(EASY|MEDIUM|HARD)$"


class CategoryRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    order_index: int = 0


class CategoryUpdateRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    order_index: Optional[int] = None


class CategoryResponse(ORMModel):
    id: uuid.UUID
    name: str
    description: Optional[str]
    order_index: int


class OptionRequest(BaseModel):
    option_key: str = Field(min_length=1, max_length=10)
    option_text: str = Field(min_length=1)
    is_correct: bool = False
    order_index: Optional[int] = None


class OptionResponse(ORMModel):
    id: uuid.UUID
    option_key: str
    option_text: str
    is_correct: bool
    order_index: int


class QuestionCreateRequest(BaseModel):
    content: str = Field(min_length=1)
    question_type: str = Field(pattern=QUESTION_TYPE_PATTERN)
    difficulty_level: str = Field(pattern=DIFFICULTY_PATTERN)
    category_id: Optional[uuid.UUID] = None
    career_criteria_id: Optional[uuid.UUID] = None
    points: float = Field(default=1, gt=0)
    explanation: Optional[str] = None
    is_active: bool = True
    options: List[OptionRequest] = []


class QuestionUpdateRequest(BaseModel):
    content: Optional[str] = Field(default=None, min_length=1)
    question_type: Optional[str] = Field(default=None, pattern=QUESTION_TYPE_PATTERN)
    difficulty_level: Optional[str] = Field(default=None, pattern=DIFFICULTY_PATTERN)
    category_id: Optional[uuid.UUID] = None
    career_criteria_id: Optional[uuid.UUID] = None
    points: Optional[float] = Field(default=None, gt=0)
    explanation: Optional[str] = None
    is_active: Optional[bool] = None


class ReplaceOptionsRequest(BaseModel):
    options: List[OptionRequest]


class QuestionResponse(ORMModel):
    id: uuid.UUID
    content: str
    question_type: str
    difficulty_level: str
    category_id: Optional[uuid.UUID]
    career_criteria_id: Optional[uuid.UUID]
    points: float
    explanation: Optional[str]
    is_active: bool
    usage_count: int
    created_at: datetime
    options: List[OptionResponse]


# Categories

@router.post("/question-categories", status_code=status.HTTP_201_CREATED, dependencies=[Depends(admin_only)])
def create_category(request: CategoryRequest, db: Session = Depends(get_db)):
    category = question_service.create_category(db, request.name, request.description, request.order_index)
    return api_response(CategoryResponse.model_validate(category), "Category created successfully")


@router.get("/question-categories", dependencies=[Depends(admin_only)])
def list_categories(db: Session = Depends(get_db)):
    categories = question_service.list_categories(db)
    return api_response([CategoryResponse.model_validate(c) for c in categories])


@router.put("/question-categories/{category_id}", dependencies=[Depends(admin_only)])
def update_category(category_id: uuid.UUID, request: CategoryUpdateRequest, db: Session = Depends(get_db)):
    category = question_service.update_category(db, category_id, request.model_dump(exclude_unset=True))
    return api_response(CategoryResponse.model_validate(category), "Category updated successfully")


@router.delete("/question-categories/{category_id}", dependencies=[Depends(admin_only)])
def delete_category(category_id: uuid.UUID, db: Session = Depends(get_db)):
    question_service.delete_category(db, category_id)
    return api_response(None, "Category deleted successfully")


# Questions

@router.post("/questions", status_code=status.HTTP_201_CREATED)
def create_question(
    request: QuestionCreateRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(admin_only),
):
    question = question_service.create_question(db, request.model_dump(), created_by=current_user.id)
    return api_response(QuestionResponse.model_validate(question), "Question created successfully")


@router.get("/questions", dependencies=[Depends(admin_only)])
def list_questions(
    category_id: Optional[uuid.UUID] = None,
    career_criteria_id: Optional[uuid.UUID] = None,
    question_type: Optional[str] = None,
    difficulty_level: Optional[str] = None,
    is_active: Optional[bool] = None,
    search: Optional[str] = None,
    paging: Paging = Depends(get_paging),
    db: Session = Depends(get_db),
):
    questions, total = question_service.list_questions(
        db,
        paging,
        category_id=category_id,
        career_criteria_id=career_criteria_id,
        question_type=question_type,
        difficulty_level=difficulty_level,
        is_active=is_active,
        search=search,
    )
    return api_response(
        [QuestionResponse.model_validate(q) for q in questions],
        "Get questions successfully",
        paging.meta(total),
    )


@router.get("/questions/{question_id}", dependencies=[Depends(admin_only)])
def get_question(question_id: uuid.UUID, db: Session = Depends(get_db)):
    question = question_service.get_question(db, question_id)
    return api_response(QuestionResponse.model_validate(question))


@router.put("/questions/{question_id}", dependencies=[Depends(admin_only)])
def update_question(question_id: uuid.UUID, request: QuestionUpdateRequest, db: Session = Depends(get_db)):
    question = question_service.update_question(db, question_id, request.model_dump(exclude_unset=True))
    return api_response(QuestionResponse.model_validate(question), "Question updated successfully")


@router.put("/questions/{question_id}/options", dependencies=[Depends(admin_only)])
def replace_options(question_id: uuid.UUID, request: ReplaceOptionsRequest, db: Session = Depends(get_db)):
    options = [opt.model_dump() for opt in request.options]
    question = question_service.replace_question_options(db, question_id, options)
    return api_response(QuestionResponse.model_validate(question), "Question options updated successfully")


@router.delete("/questions/{question_id}", dependencies=[Depends(admin_only)])
def delete_question(question_id: uuid.UUID, db: Session = Depends(get_db)):
    question_service.delete_question(db, question_id)
    return api_response(None, "Question deleted successfully")
