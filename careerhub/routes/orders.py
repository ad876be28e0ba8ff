"""Career order routes."""
import uuid
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from careerhub.core.security import require_roles
from careerhub.db.sessions import get_db
from careerhub.models.user import ROLE_ADMIN
from careerhub.services import orders as order_service
from careerhub.utils.pagination import Paging, get_paging
from careerhub.utils.responses import ORMModel, api_response


router = APIRouter(
    prefix="/api/v1/orders",
    tags=["Career Orders"],
    dependencies=[Depends(require_roles(ROLE_ADMIN))],
)


class OrderCreateRequest(BaseModel):
    school_id: uuid.UUID
    career_ids: List[uuid.UUID] = Field(min_length=1)
    note: Optional[str] = None


class OrderItemResponse(ORMModel):
    id: uuid.UUID
    career_id: uuid.UUID


class OrderResponse(ORMModel):
    id: uuid.UUID
    school_id: uuid.UUID
    status: str
    note: Optional[str]
    created_at: datetime
    items: List[OrderItemResponse]


@router.post("", status_code=status.HTTP_201_CREATED)
def create_order(request: OrderCreateRequest, db: Session = Depends(get_db)):
    order = order_service.create_order(db, request.school_id, request.career_ids, request.note)
    return api_response(OrderResponse.model_validate(order), "Order created successfully")


@router.get("")
def list_orders(
    school_id: Optional[uuid.UUID] = None,
    status: Optional[str] = None,
    paging: Paging = Depends(get_paging),
    db: Session = Depends(get_db),
):
    orders, total = order_service.list_orders(db, paging, school_id=school_id, status=status)
    return api_response(
        [OrderResponse.model_validate(o) for o in orders],
        "Get orders successfully",
        paging.meta(total),
    )


@router.get("/{order_id}")
def get_order(order_id: uuid.UUID, db: Session = Depends(get_db)):
    order = order_service.get_order(db, order_id)
    return api_response(OrderResponse.model_validate(order))


@router.put("/{order_id}/cancel")
def cancel_order(order_id: uuid.UUID, db: Session = Depends(get_db)):
    order = order_service.cancel_order(db, order_id)
    return api_response(OrderResponse.model_validate(order), "Order cancelled successfully")
