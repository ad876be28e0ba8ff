"""Career orders placed by schools."""
import logging
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session, selectinload

from careerhub.core.errors import ConflictError, NotFoundError, ValidationError
from careerhub.models import Career, CareerOrder, CareerOrderItem, School
from careerhub.models.order import ORDER_CANCELLED, ORDER_PENDING
from careerhub.utils.pagination import Paging

logger = logging.getLogger(__name__)


def create_order(db: Session, school_id, career_ids: List, note: Optional[str] = None) -> CareerOrder:
    if not career_ids:
        raise ValidationError("At least one career is required")
    if len(set(career_ids)) != len(career_ids):
        raise ValidationError("Duplicate careers in order")

    school = db.query(School).filter(School.id == school_id).first()
    if not school:
        raise NotFoundError("School not found")

    found = db.query(Career.id).filter(Career.id.in_(career_ids)).count()
    if found != len(career_ids):
        raise NotFoundError("Some careers not found")

    order = CareerOrder(school_id=school.id, note=note, status=ORDER_PENDING)
    order.items = [CareerOrderItem(career_id=career_id) for career_id in career_ids]
    db.add(order)
    db.commit()
    db.refresh(order)
    logger.info("Created order %s for school %s with %d careers", order.id, school.id, len(career_ids))
    return order


def get_order(db: Session, order_id) -> CareerOrder:
    order = db.query(CareerOrder).options(selectinload(CareerOrder.items)).filter(
        CareerOrder.id == order_id
    ).first()
    if not order:
        raise NotFoundError("Career order not found")
    return order


def list_orders(
    db: Session,
    paging: Paging,
    school_id=None,
    status: Optional[str] = None,
) -> Tuple[List[CareerOrder], int]:
    query = db.query(CareerOrder).options(selectinload(CareerOrder.items))
    if school_id:
        query = query.filter(CareerOrder.school_id == school_id)
    if status:
        query = query.filter(CareerOrder.status == status)
    total = query.count()
    orders = query.order_by(CareerOrder.created_at.desc()).offset(paging.skip).limit(paging.limit).all()
    return orders, total


def cancel_order(db: Session, order_id) -> CareerOrder:
    order = get_order(db, order_id)
    if order.status != ORDER_PENDING:
        raise ConflictError(f"Only PENDING orders can be cancelled (current: {order.status})")
    order.status = ORDER_CANCELLED
    db.commit()
    db.refresh(order)
    logger.info("Cancelled order %s", order.id)
    return order
