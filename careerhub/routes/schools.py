"""School and class administration routes."""
import uuid
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from careerhub.core.security import require_roles
from careerhub.db.sessions import get_db
from careerhub.models.user import ROLE_ADMIN
from careerhub.services import schools as school_service
from careerhub.utils.pagination import Paging, get_paging
from careerhub.utils.responses import ORMModel, api_response


router = APIRouter(
    prefix="/api/v1/schools",
    tags=["Schools"],
    dependencies=[Depends(require_roles(ROLE_ADMIN))],
)


class SchoolCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    code: str = Field(min_length=1, max_length=50)
    address: Optional[str] = None


class SchoolResponse(ORMModel):
    id: uuid.UUID
    name: str
    code: str
    address: Optional[str]
    is_active: bool
    created_at: datetime


class ClassCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    grade: Optional[str] = None


class ClassResponse(ORMModel):
    id: uuid.UUID
    school_id: uuid.UUID
    name: str
    grade: Optional[str]
    created_at: datetime


@router.post("", status_code=status.HTTP_201_CREATED)
def create_school(request: SchoolCreateRequest, db: Session = Depends(get_db)):
    school = school_service.create_school(db, request.name, request.code, request.address)
    return api_response(SchoolResponse.model_validate(school), "School created successfully")


@router.get("")
def list_schools(
    search: Optional[str] = None,
    paging: Paging = Depends(get_paging),
    db: Session = Depends(get_db),
):
    schools, total = school_service.list_schools(db, paging, search=search)
    return api_response(
        [SchoolResponse.model_validate(s) for s in schools],
        "Get schools successfully",
        paging.meta(total),
    )


@router.get("/{school_id}")
def get_school(school_id: uuid.UUID, db: Session = Depends(get_db)):
    school = school_service.get_school(db, school_id)
    return api_response(SchoolResponse.model_validate(school))


@router.post("/{school_id}/classes", status_code=status.HTTP_201_CREATED)
def create_class(school_id: uuid.UUID, request: ClassCreateRequest, db: Session = Depends(get_db)):
    school_class = school_service.create_class(db, school_id, request.name, request.grade)
    return api_response(ClassResponse.model_validate(school_class), "Class created successfully")


@router.get("/{school_id}/classes")
def list_classes(school_id: uuid.UUID, db: Session = Depends(get_db)):
    classes = school_service.list_classes(db, school_id)
    return api_response([ClassResponse.model_validate(c) for c in classes])
