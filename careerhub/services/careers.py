"""Career catalog, criteria and per-class criteria configuration."""
import logging
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from careerhub.core.errors import ConflictError, NotFoundError, ValidationError
from careerhub.models import (
    Career,
    CareerCriteria,
    ClassCriteriaConfig,
    SchoolCareerLicense,
    SchoolClass,
)
from careerhub.models.license import LICENSE_ACTIVE
from careerhub.utils.pagination import Paging

logger = logging.getLogger(__name__)

CAREER_FIELDS = ("code", "name", "description", "is_active")
CRITERIA_FIELDS = ("name", "description", "order_index", "video_url")


def get_career(db: Session, career_id) -> Career:
    career = db.query(Career).filter(Career.id == career_id).first()
    if not career:
        raise NotFoundError("Career not found")
    return career


def create_career(db: Session, data: dict) -> Career:
    if db.query(Career).filter(Career.code == data["code"]).first():
        raise ConflictError(f"Career with code {data['code']} already exists")

    career = Career(**{k: v for k, v in data.items() if k in CAREER_FIELDS})
    db.add(career)
    db.commit()
    db.refresh(career)
    logger.info("Created career %s (%s)", career.id, career.code)
    return career


def list_careers(
    db: Session,
    paging: Paging,
    search: Optional[str] = None,
    is_active: Optional[bool] = None,
) -> Tuple[List[Career], int]:
    query = db.query(Career)
    if search:
        query = query.filter(Career.name.ilike(f"%{search}%") | Career.code.ilike(f"%{search}%"))
    if is_active is not None:
        query = query.filter(Career.is_active.is_(is_active))
    total = query.count()
    careers = query.order_by(Career.created_at.desc()).offset(paging.skip).limit(paging.limit).all()
    return careers, total


def update_career(db: Session, career_id, data: dict) -> Career:
    career = get_career(db, career_id)

    code = data.get("code")
    if code and code != career.code:
        if db.query(Career).filter(Career.code == code, Career.id != career.id).first():
            raise ConflictError(f"Career with code {code} already exists")

    for field in CAREER_FIELDS:
        if field in data and data[field] is not None:
            setattr(career, field, data[field])

    db.commit()
    db.refresh(career)
    return career


def delete_career(db: Session, career_id) -> None:
    career = get_career(db, career_id)

    licensed = db.query(SchoolCareerLicense).filter(SchoolCareerLicense.career_id == career.id).count()
    if licensed:
        raise ConflictError(f"Cannot delete career with {licensed} issued licenses. Deactivate it instead")

    db.delete(career)
    db.commit()
    logger.info("Deleted career %s", career.id)


def get_criteria(db: Session, criteria_id) -> CareerCriteria:
    criteria = db.query(CareerCriteria).filter(CareerCriteria.id == criteria_id).first()
    if not criteria:
        raise NotFoundError("Career criteria not found")
    return criteria


def create_criteria(db: Session, career_id, data: dict) -> CareerCriteria:
    career = get_career(db, career_id)
    criteria = CareerCriteria(
        career_id=career.id,
        attachments=[],
        **{k: v for k, v in data.items() if k in CRITERIA_FIELDS and v is not None},
    )
    db.add(criteria)
    db.commit()
    db.refresh(criteria)
    return criteria


def list_criteria(db: Session, career_id) -> List[CareerCriteria]:
    career = get_career(db, career_id)
    return db.query(CareerCriteria).filter(
        CareerCriteria.career_id == career.id
    ).order_by(CareerCriteria.order_index).all()


def update_criteria(db: Session, criteria_id, data: dict) -> CareerCriteria:
    criteria = get_criteria(db, criteria_id)
    for field in CRITERIA_FIELDS:
        if field in data and data[field] is not None:
            setattr(criteria, field, data[field])
    db.commit()
    db.refresh(criteria)
    return criteria


def delete_criteria(db: Session, criteria_id) -> None:
    criteria = get_criteria(db, criteria_id)
    db.delete(criteria)
    db.commit()


def attach_criteria_media(db: Session, criteria_id, path: str, kind: str) -> CareerCriteria:
    """Record a stored file on a criteria: `kind` is "video" or "attachment"."""
    criteria = get_criteria(db, criteria_id)
    if kind == "video":
        criteria.video_url = path
    elif kind == "attachment":
        # reassign so the JSON column is flagged dirty
        criteria.attachments = [*(criteria.attachments or []), path]
    else:
        raise ValidationError(f"Unknown media kind: {kind}")
    db.commit()
    db.refresh(criteria)
    return criteria


def configure_class_criteria(
    db: Session,
    school_id,
    class_id,
    career_id,
    criteria_ids: List,
) -> List[ClassCriteriaConfig]:
    """
    Replace the set of criteria a class learns for a career.

    The class must belong to `school_id`, the school must hold an ACTIVE
    license for the career, and every criteria must belong to the career.
    """
    school_class = db.query(SchoolClass).filter(SchoolClass.id == class_id).first()
    if not school_class or school_class.school_id != school_id:
        raise NotFoundError("Class not found")

    career = get_career(db, career_id)

    licensed = db.query(SchoolCareerLicense).filter(
        SchoolCareerLicense.school_id == school_id,
        SchoolCareerLicense.career_id == career.id,
        SchoolCareerLicense.status == LICENSE_ACTIVE,
    ).first()
    if not licensed:
        raise ValidationError("School does not hold an active license for this career")

    unique_ids = list(dict.fromkeys(criteria_ids))
    if unique_ids:
        found = db.query(CareerCriteria.id).filter(
            CareerCriteria.id.in_(unique_ids),
            CareerCriteria.career_id == career.id,
        ).count()
        if found != len(unique_ids):
            raise ValidationError("Some criteria do not belong to this career")

    try:
        db.query(ClassCriteriaConfig).filter(
            ClassCriteriaConfig.class_id == school_class.id,
            ClassCriteriaConfig.career_id == career.id,
        ).delete(synchronize_session=False)
        configs = [
            ClassCriteriaConfig(class_id=school_class.id, career_id=career.id, criteria_id=criteria_id)
            for criteria_id in unique_ids
        ]
        db.add_all(configs)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(
        "Class %s configured with %d criteria for career %s",
        school_class.id, len(configs), career.id,
    )
    return configs


def list_class_criteria(db: Session, class_id, career_id=None) -> List[ClassCriteriaConfig]:
    query = db.query(ClassCriteriaConfig).filter(ClassCriteriaConfig.class_id == class_id)
    if career_id:
        query = query.filter(ClassCriteriaConfig.career_id == career_id)
    return query.all()
