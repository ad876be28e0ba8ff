"""School and class management."""
import logging
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from careerhub.core.errors import ConflictError, NotFoundError
from careerhub.models import School, SchoolClass
from careerhub.utils.pagination import Paging

logger = logging.getLogger(__name__)


def get_school(db: Session, school_id) -> School:
    school = db.query(School).filter(School.id == school_id).first()
    if not school:
        raise NotFoundError("School not found")
    return school


def create_school(db: Session, name: str, code: str, address: Optional[str] = None) -> School:
    if db.query(School).filter(School.code == code).first():
        raise ConflictError(f"School with code {code} already exists")

    school = School(name=name, code=code, address=address)
    db.add(school)
    db.commit()
    db.refresh(school)
    logger.info("Created school %s (%s)", school.id, school.code)
    return school


def list_schools(db: Session, paging: Paging, search: Optional[str] = None) -> Tuple[List[School], int]:
    query = db.query(School)
    if search:
        query = query.filter(School.name.ilike(f"%{search}%"))
    total = query.count()
    schools = query.order_by(School.created_at.desc()).offset(paging.skip).limit(paging.limit).all()
    return schools, total


def create_class(db: Session, school_id, name: str, grade: Optional[str] = None) -> SchoolClass:
    school = get_school(db, school_id)
    school_class = SchoolClass(school_id=school.id, name=name, grade=grade)
    db.add(school_class)
    db.commit()
    db.refresh(school_class)
    return school_class


def list_classes(db: Session, school_id) -> List[SchoolClass]:
    school = get_school(db, school_id)
    return db.query(SchoolClass).filter(SchoolClass.school_id == school.id).order_by(SchoolClass.name).all()


def get_class(db: Session, class_id) -> SchoolClass:
    school_class = db.query(SchoolClass).filter(SchoolClass.id == class_id).first()
    if not school_class:
        raise NotFoundError("Class not found")
    return school_class
