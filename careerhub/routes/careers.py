"""Career catalog routes."""
import uuid
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from careerhub.core.security import get_current_user, require_roles
from careerhub.db.sessions import get_db
from careerhub.models.user import ROLE_ADMIN
from careerhub.services import careers as career_service
from careerhub.services.file_storage import FileStorage
from careerhub.utils.pagination import Paging, get_paging
from careerhub.utils.responses import ORMModel, api_response


router = APIRouter(prefix="/api/v1/careers", tags=["Careers"])

admin_only = require_roles(ROLE_ADMIN)


# Request/Response schemas
class CareerCreateRequest(BaseModel):
    code: str = Field(min_length=1, max_length=50)
    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    is_active: bool = True


class CareerUpdateRequest(BaseModel):
    code: Optional[str] = Field(default=None, min_length=1, max_length=50)
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    is_active: Optional[bool] = None


class CareerResponse(ORMModel):
    id: uuid.UUID
    code: str
    name: str
    description: Optional[str]
    is_active: bool
    created_at: datetime


class CriteriaCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    order_index: int = 0
    video_url: Optional[str] = None


class CriteriaUpdateRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    order_index: Optional[int] = None
    video_url: Optional[str] = None


class CriteriaResponse(ORMModel):
    id: uuid.UUID
    career_id: uuid.UUID
    name: str
    description: Optional[str]
    order_index: int
    video_url: Optional[str]
    attachments: Optional[List[str]]
    created_at: datetime


@router.post("", status_code=status.HTTP_201_CREATED, dependencies=[Depends(admin_only)])
def create_career(request: CareerCreateRequest, db: Session = Depends(get_db)):
    career = career_service.create_career(db, request.model_dump())
    return api_response(CareerResponse.model_validate(career), "Career created successfully")


@router.get("", dependencies=[Depends(get_current_user)])
def list_careers(
    search: Optional[str] = None,
    is_active: Optional[bool] = None,
    paging: Paging = Depends(get_paging),
    db: Session = Depends(get_db),
):
    careers, total = career_service.list_careers(db, paging, search=search, is_active=is_active)
    return api_response(
        [CareerResponse.model_validate(c) for c in careers],
        "Get careers successfully",
        paging.meta(total),
    )


@router.get("/{career_id}", dependencies=[Depends(get_current_user)])
def get_career(career_id: uuid.UUID, db: Session = Depends(get_db)):
    career = career_service.get_career(db, career_id)
    data = CareerResponse.model_validate(career).model_dump()
    data["criteria"] = [CriteriaResponse.model_validate(c) for c in career.criteria]
    return api_response(data)


@router.put("/{career_id}", dependencies=[Depends(admin_only)])
def update_career(career_id: uuid.UUID, request: CareerUpdateRequest, db: Session = Depends(get_db)):
    career = career_service.update_career(db, career_id, request.model_dump(exclude_unset=True))
    return api_response(CareerResponse.model_validate(career), "Career updated successfully")


@router.delete("/{career_id}", dependencies=[Depends(admin_only)])
def delete_career(career_id: uuid.UUID, db: Session = Depends(get_db)):
    career_service.delete_career(db, career_id)
    return api_response(None, "Career deleted successfully")


# Criteria

@router.post("/{career_id}/criteria", status_code=status.HTTP_201_CREATED, dependencies=[Depends(admin_only)])
def create_criteria(career_id: uuid.UUID, request: CriteriaCreateRequest, db: Session = Depends(get_db)):
    criteria = career_service.create_criteria(db, career_id, request.model_dump())
    return api_response(CriteriaResponse.model_validate(criteria), "Criteria created successfully")


@router.get("/{career_id}/criteria", dependencies=[Depends(get_current_user)])
def list_criteria(career_id: uuid.UUID, db: Session = Depends(get_db)):
    criteria = career_service.list_criteria(db, career_id)
    return api_response([CriteriaResponse.model_validate(c) for c in criteria])


@router.put("/criteria/{criteria_id}", dependencies=[Depends(admin_only)])
def update_criteria(criteria_id: uuid.UUID, request: CriteriaUpdateRequest, db: Session = Depends(get_db)):
    criteria = career_service.update_criteria(db, criteria_id, request.model_dump(exclude_unset=True))
    return api_response(CriteriaResponse.model_validate(criteria), "Criteria updated successfully")


@router.delete("/criteria/{criteria_id}", dependencies=[Depends(admin_only)])
def delete_criteria(criteria_id: uuid.UUID, db: Session = Depends(get_db)):
    career_service.delete_criteria(db, criteria_id)
    return api_response(None, "Criteria deleted successfully")


@router.post("/criteria/{criteria_id}/media", dependencies=[Depends(admin_only)])
async def upload_criteria_media(
    criteria_id: uuid.UUID,
    kind: str = Query("attachment", pattern="^(video|attachment)$"),
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
):
    """
    Upload a video or an attachment for a criteria.

    The file is buffered in memory, checked against the upload size cap and
    written to local storage before the criteria row is updated.
    """
    career_service.get_criteria(db, criteria_id)
    path = await FileStorage().save(file, f"criteria/{criteria_id}/{kind}s")
    criteria = career_service.attach_criteria_media(db, criteria_id, path, kind)
    return api_response(CriteriaResponse.model_validate(criteria), "Media uploaded successfully")
