"""School career license lifecycle.

States: PENDING_ACTIVATION, ACTIVE, EXPIRED and REVOKED. REVOKED is terminal;
ACTIVE and EXPIRED move into each other by date math (expiry sweep and
renewal).
"""
import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from careerhub.core.errors import ConflictError, NotFoundError, ValidationError
from careerhub.models import (
    Career,
    CareerOrder,
    CareerOrderItem,
    School,
    SchoolCareerLicense,
)
from careerhub.models.license import (
    LICENSE_ACTIVE,
    LICENSE_EXPIRED,
    LICENSE_REVOKED,
)
from careerhub.models.order import ORDER_CANCELLED, ORDER_CONFIRMED
from careerhub.utils.pagination import Paging
from careerhub.utils.timeutils import add_months, as_naive_utc, utcnow

logger = logging.getLogger(__name__)


def _now(now: Optional[datetime]) -> datetime:
    return as_naive_utc(now) if now else utcnow()


def _get_license(db: Session, license_id) -> SchoolCareerLicense:
    license = db.query(SchoolCareerLicense).filter(SchoolCareerLicense.id == license_id).first()
    if not license:
        raise NotFoundError("License not found")
    return license


def create_licenses_for_order(
    db: Session,
    order_id,
    month_rental: int,
    now: Optional[datetime] = None,
) -> List[SchoolCareerLicense]:
    """Issue one license per order item, valid for `month_rental` months from now."""
    if not month_rental or month_rental <= 0:
        raise ValidationError("month_rental must be greater than 0")

    order = db.query(CareerOrder).filter(CareerOrder.id == order_id).first()
    if not order:
        raise NotFoundError("Career order not found")
    if order.status == ORDER_CANCELLED:
        raise ConflictError("Cannot issue licenses for a cancelled order")

    school = db.query(School).filter(School.id == order.school_id).first()
    if not school:
        raise NotFoundError("School not found")

    items = db.query(CareerOrderItem).filter(CareerOrderItem.order_id == order.id).all()
    if not items:
        raise ValidationError("No items found in this order")

    career_ids = {item.career_id for item in items}
    found = db.query(Career.id).filter(Career.id.in_(list(career_ids))).count()
    if found != len(career_ids):
        raise NotFoundError("Some careers not found")

    existing = db.query(SchoolCareerLicense).filter(
        SchoolCareerLicense.school_id == school.id,
        SchoolCareerLicense.order_id == order.id,
    ).first()
    if existing:
        raise ConflictError("Licenses for this order already exist")

    start_date = _now(now)
    expiry_date = add_months(start_date, month_rental)

    licenses = [
        SchoolCareerLicense(
            school_id=school.id,
            career_id=item.career_id,
            order_id=order.id,
            order_item_id=item.id,
            status=LICENSE_ACTIVE,
            start_date=start_date,
            expiry_date=expiry_date,
        )
        for item in items
    ]

    try:
        db.add_all(licenses)
        order.status = ORDER_CONFIRMED
        db.commit()
    except Exception:
        db.rollback()
        raise

    for license in licenses:
        db.refresh(license)

    logger.info(
        "Created %d licenses for order %s (school %s, %d months)",
        len(licenses), order.id, school.id, month_rental,
    )
    return licenses


def list_licenses_by_order(
    db: Session,
    order_id,
    paging: Paging,
    status: Optional[str] = None,
) -> Tuple[List[SchoolCareerLicense], int]:
    order = db.query(CareerOrder).filter(CareerOrder.id == order_id).first()
    if not order:
        raise NotFoundError("Career order not found")

    query = db.query(SchoolCareerLicense).filter(SchoolCareerLicense.order_id == order.id)
    if status:
        query = query.filter(SchoolCareerLicense.status == status)

    total = query.count()
    licenses = query.order_by(SchoolCareerLicense.created_at.desc()).offset(paging.skip).limit(paging.limit).all()
    return licenses, total


def activate_license(db: Session, license_id, now: Optional[datetime] = None) -> SchoolCareerLicense:
    license = _get_license(db, license_id)

    if license.status == LICENSE_REVOKED:
        raise ConflictError("Cannot activate a revoked license")
    if license.status == LICENSE_ACTIVE:
        raise ConflictError("License is already active")
    if not license.start_date or not license.expiry_date:
        raise ValidationError("License must have start_date and expiry_date")

    current = _now(now)
    if current < license.start_date:
        raise ValidationError("Cannot activate license before start_date")
    if current > license.expiry_date:
        raise ValidationError("Cannot activate license after expiry_date")

    license.status = LICENSE_ACTIVE
    db.commit()
    db.refresh(license)
    logger.info("License %s activated", license.id)
    return license


def renew_license(
    db: Session,
    license_id,
    expiry_date: datetime,
    now: Optional[datetime] = None,
) -> SchoolCareerLicense:
    """Move a license's expiry date; an EXPIRED license renewed into the future becomes ACTIVE."""
    if expiry_date is None:
        raise ValidationError("expiry_date is required")

    license = _get_license(db, license_id)
    if license.status == LICENSE_REVOKED:
        raise ConflictError("Cannot renew a revoked license")

    new_expiry = as_naive_utc(expiry_date)
    if license.start_date and new_expiry <= license.start_date:
        raise ValidationError("expiry_date must be after start_date")

    license.expiry_date = new_expiry
    if license.status == LICENSE_EXPIRED and new_expiry > _now(now):
        license.status = LICENSE_ACTIVE

    db.commit()
    db.refresh(license)
    logger.info("License %s renewed until %s (status %s)", license.id, new_expiry, license.status)
    return license


def revoke_license(db: Session, license_id) -> SchoolCareerLicense:
    license = _get_license(db, license_id)
    if license.status == LICENSE_REVOKED:
        raise ConflictError("License is already revoked")

    license.status = LICENSE_REVOKED
    db.commit()
    db.refresh(license)
    logger.info("License %s revoked", license.id)
    return license


def expire_overdue_licenses(db: Session, now: Optional[datetime] = None) -> int:
    """Flip ACTIVE licenses past their expiry date to EXPIRED."""
    current = _now(now)
    overdue = db.query(SchoolCareerLicense).filter(
        SchoolCareerLicense.status == LICENSE_ACTIVE,
        SchoolCareerLicense.expiry_date.isnot(None),
        SchoolCareerLicense.expiry_date < current,
    ).all()

    for license in overdue:
        license.status = LICENSE_EXPIRED
    db.commit()

    if overdue:
        logger.info("Expired %d overdue licenses", len(overdue))
    return len(overdue)


def list_expiring_licenses(
    db: Session,
    days: int = 30,
    now: Optional[datetime] = None,
) -> List[SchoolCareerLicense]:
    """ACTIVE licenses whose expiry falls within the next `days` days, soonest first."""
    current = _now(now)
    return db.query(SchoolCareerLicense).filter(
        SchoolCareerLicense.status == LICENSE_ACTIVE,
        SchoolCareerLicense.expiry_date >= current,
        SchoolCareerLicense.expiry_date <= current + timedelta(days=days),
    ).order_by(SchoolCareerLicense.expiry_date.asc()).all()


def get_active_careers_for_school(
    db: Session,
    school_id,
    paging: Paging,
) -> Tuple[List[Tuple[Career, SchoolCareerLicense]], int]:
    """
    Careers a school may currently offer.

    Among the school's ACTIVE licenses only the latest-expiring one per career
    is kept; careers that are not `is_active` are left out.

    Returns:
        ((career, license) pairs for the requested page, total count)
    """
    school = db.query(School).filter(School.id == school_id).first()
    if not school:
        raise NotFoundError("School not found")

    licenses = db.query(SchoolCareerLicense).filter(
        SchoolCareerLicense.school_id == school.id,
        SchoolCareerLicense.status == LICENSE_ACTIVE,
    ).all()

    latest: Dict = {}
    for license in licenses:
        current = latest.get(license.career_id)
        if current is None or _expiry_key(license) > _expiry_key(current):
            latest[license.career_id] = license

    if not latest:
        return [], 0

    query = db.query(Career).filter(Career.id.in_(list(latest)), Career.is_active.is_(True))
    total = query.count()
    careers = query.order_by(Career.created_at.desc()).offset(paging.skip).limit(paging.limit).all()
    return [(career, latest[career.id]) for career in careers], total


def _expiry_key(license: SchoolCareerLicense) -> datetime:
    return license.expiry_date or datetime.min
