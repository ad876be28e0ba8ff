"""School career license routes."""
import uuid
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from careerhub.core.security import require_roles
from careerhub.db.sessions import get_db
from careerhub.models.user import ROLE_ADMIN
from careerhub.services import licenses as license_service
from careerhub.utils.pagination import Paging, get_paging
from careerhub.utils.responses import ORMModel, api_response


router = APIRouter(
    prefix="/api/v1/licenses",
    tags=["Licenses"],
    dependencies=[Depends(require_roles(ROLE_ADMIN))],
)


class CreateLicensesRequest(BaseModel):
    order_id: uuid.UUID
    month_rental: int = Field(gt=0)


class RenewLicenseRequest(BaseModel):
    expiry_date: datetime


class LicenseResponse(ORMModel):
    id: uuid.UUID
    school_id: uuid.UUID
    career_id: uuid.UUID
    order_id: Optional[uuid.UUID]
    order_item_id: Optional[uuid.UUID]
    status: str
    start_date: Optional[datetime]
    expiry_date: Optional[datetime]
    created_at: datetime
    updated_at: Optional[datetime]


@router.post("", status_code=status.HTTP_201_CREATED)
def create_licenses(request: CreateLicensesRequest, db: Session = Depends(get_db)):
    """Issue licenses for every item of an order."""
    licenses = license_service.create_licenses_for_order(db, request.order_id, request.month_rental)
    data = [LicenseResponse.model_validate(lic) for lic in licenses]
    return api_response(
        data,
        f"Created {len(data)} licenses successfully",
        {
            "total": len(data),
            "month_rental": request.month_rental,
            "start_date": licenses[0].start_date,
            "expiry_date": licenses[0].expiry_date,
        },
    )


@router.get("")
def list_licenses(
    order_id: uuid.UUID,
    status: Optional[str] = None,
    paging: Paging = Depends(get_paging),
    db: Session = Depends(get_db),
):
    licenses, total = license_service.list_licenses_by_order(db, order_id, paging, status=status)
    return api_response(
        [LicenseResponse.model_validate(lic) for lic in licenses],
        "Get licenses successfully",
        paging.meta(total),
    )


@router.get("/expiring")
def list_expiring_licenses(days: int = Query(30, ge=1, le=365), db: Session = Depends(get_db)):
    licenses = license_service.list_expiring_licenses(db, days)
    return api_response([LicenseResponse.model_validate(lic) for lic in licenses])


@router.post("/expire-overdue")
def expire_overdue_licenses(db: Session = Depends(get_db)):
    count = license_service.expire_overdue_licenses(db)
    return api_response({"expired": count}, f"Expired {count} licenses")


@router.put("/{license_id}/activate")
def activate_license(license_id: uuid.UUID, db: Session = Depends(get_db)):
    license = license_service.activate_license(db, license_id)
    return api_response(LicenseResponse.model_validate(license), "License activated successfully")


@router.put("/{license_id}/renew")
def renew_license(license_id: uuid.UUID, request: RenewLicenseRequest, db: Session = Depends(get_db)):
    license = license_service.renew_license(db, license_id, request.expiry_date)
    return api_response(LicenseResponse.model_validate(license), "License renewed successfully")


@router.put("/{license_id}/revoke")
def revoke_license(license_id: uuid.UUID, db: Session = Depends(get_db)):
    license = license_service.revoke_license(db, license_id)
    return api_response(LicenseResponse.model_validate(license), "License revoked successfully")
