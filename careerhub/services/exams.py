"""Exam definitions and their question distributions."""
import logging
from typing import List, Optional, Tuple

from sqlalchemy import or_, select
from sqlalchemy.orm import Session, selectinload

from careerhub.core.errors import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from careerhub.models import (
    Career,
    CareerCriteria,
    Exam,
    ExamAttempt,
    ExamQuestion,
    ExamQuestionDistribution,
    QuestionCategory,
    SchoolCareerLicense,
)
from careerhub.models.license import LICENSE_ACTIVE
from careerhub.utils.pagination import Paging

logger = logging.getLogger(__name__)

EXAM_FIELDS = (
    "title",
    "description",
    "career_id",
    "career_criteria_id",
    "time_limit_minutes",
    "total_points",
    "pass_score",
)


def validate_distributions(db: Session, distributions: List[dict]) -> None:
    """
    Check distribution rows before they are written.

    Raises:
        ValidationError: no rows, non-positive quantity, or tier counts that
            do not add up to quantity
        NotFoundError: unknown category or criteria
    """
    if not distributions:
        raise ValidationError("At least one distribution is required")

    for index, dist in enumerate(distributions, 1):
        quantity = dist.get("quantity") or 0
        if quantity <= 0:
            raise ValidationError(f"Distribution {index}: quantity must be greater than 0")

        counts = [dist.get("easy_count") or 0, dist.get("medium_count") or 0, dist.get("hard_count") or 0]
        if any(c < 0 for c in counts):
            raise ValidationError(f"Distribution {index}: difficulty counts must not be negative")
        if (dist.get("points_per_question") or 0) < 0:
            raise ValidationError(f"Distribution {index}: points per question must not be negative")
        if any(counts) and sum(counts) != quantity:
            raise ValidationError(
                f"Distribution {index}: total count ({sum(counts)}) must equal quantity ({quantity})"
            )

        if dist.get("category_id") and not db.query(QuestionCategory).filter(
            QuestionCategory.id == dist["category_id"]
        ).first():
            raise NotFoundError(f"Distribution {index}: category not found")
        if dist.get("career_criteria_id") and not db.query(CareerCriteria).filter(
            CareerCriteria.id == dist["career_criteria_id"]
        ).first():
            raise NotFoundError(f"Distribution {index}: career criteria not found")


def _build_distributions(distributions: List[dict]) -> List[ExamQuestionDistribution]:
    return [
        ExamQuestionDistribution(
            category_id=dist.get("category_id"),
            career_criteria_id=dist.get("career_criteria_id"),
            question_type=dist.get("question_type"),
            difficulty_level=dist.get("difficulty_level"),
            quantity=dist["quantity"],
            easy_count=dist.get("easy_count") or 0,
            medium_count=dist.get("medium_count") or 0,
            hard_count=dist.get("hard_count") or 0,
            points_per_question=dist["points_per_question"] if dist.get("points_per_question") is not None else 1,
            order_index=dist["order_index"] if dist.get("order_index") is not None else index,
        )
        for index, dist in enumerate(distributions, 1)
    ]


def _validate_exam_references(db: Session, data: dict) -> None:
    if data.get("career_id") and not db.query(Career).filter(Career.id == data["career_id"]).first():
        raise NotFoundError("Career not found")
    if data.get("career_criteria_id") and not db.query(CareerCriteria).filter(
        CareerCriteria.id == data["career_criteria_id"]
    ).first():
        raise NotFoundError("Career criteria not found")


def get_exam(db: Session, exam_id) -> Exam:
    exam = db.query(Exam).options(selectinload(Exam.distributions)).filter(Exam.id == exam_id).first()
    if not exam:
        raise NotFoundError("Exam not found")
    return exam


def list_exams(
    db: Session,
    paging: Paging,
    career_id=None,
    search: Optional[str] = None,
) -> Tuple[List[Exam], int]:
    query = db.query(Exam)
    if career_id:
        query = query.filter(Exam.career_id == career_id)
    if search:
        query = query.filter(Exam.title.ilike(f"%{search}%"))
    total = query.count()
    exams = query.options(selectinload(Exam.distributions)).order_by(
        Exam.created_at.desc()
    ).offset(paging.skip).limit(paging.limit).all()
    return exams, total


def create_exam(db: Session, data: dict, created_by=None) -> Exam:
    distributions = data.get("distributions") or []
    _validate_exam_references(db, data)
    validate_distributions(db, distributions)

    exam = Exam(
        created_by=created_by,
        **{k: v for k, v in data.items() if k in EXAM_FIELDS and v is not None},
    )
    exam.distributions = _build_distributions(distributions)

    try:
        db.add(exam)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(exam)
    logger.info("Created exam %s with %d distributions", exam.id, len(distributions))
    return exam


def update_exam(db: Session, exam_id, data: dict) -> Exam:
    """
    Update exam fields and optionally replace its distributions.

    Distributions are frozen once the exam has attempts or generated
    questions; generated questions must be deleted first.
    """
    exam = get_exam(db, exam_id)
    _validate_exam_references(db, data)

    distributions = data.get("distributions")
    if distributions is not None:
        attempts = db.query(ExamAttempt).filter(ExamAttempt.exam_id == exam.id).count()
        if attempts:
            raise ConflictError(f"Cannot change distributions of an exam with {attempts} attempts")
        if db.query(ExamQuestion.id).filter(ExamQuestion.exam_id == exam.id).first():
            raise ConflictError("Cannot change distributions after questions were generated. Delete them first")
        validate_distributions(db, distributions)

    for field in EXAM_FIELDS:
        if field in data and data[field] is not None:
            setattr(exam, field, data[field])

    try:
        if distributions is not None:
            exam.distributions.clear()
            db.flush()
            exam.distributions.extend(_build_distributions(distributions))
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(exam)
    return exam


def delete_exam(db: Session, exam_id) -> None:
    exam = get_exam(db, exam_id)

    attempts = db.query(ExamAttempt).filter(ExamAttempt.exam_id == exam.id).count()
    if attempts:
        raise ConflictError(f"Cannot delete exam with {attempts} existing attempts")

    db.delete(exam)
    db.commit()
    logger.info("Deleted exam %s", exam.id)


def _licensed_career_ids(school_id):
    return select(SchoolCareerLicense.career_id).where(
        SchoolCareerLicense.school_id == school_id,
        SchoolCareerLicense.status == LICENSE_ACTIVE,
    )


def list_available_exams(db: Session, school_id, paging: Paging) -> Tuple[List[Exam], int]:
    """Exams a school's students may sit: career-less exams and exams of actively licensed careers."""
    query = db.query(Exam).filter(
        or_(
            Exam.career_id.is_(None),
            Exam.career_id.in_(_licensed_career_ids(school_id)),
        ),
        Exam.id.in_(select(ExamQuestion.exam_id)),
    )
    total = query.count()
    exams = query.order_by(Exam.created_at.desc()).offset(paging.skip).limit(paging.limit).all()
    return exams, total


def ensure_exam_available(db: Session, exam_id, school_id) -> Exam:
    exam = db.query(Exam).filter(Exam.id == exam_id).first()
    if not exam:
        raise NotFoundError("Exam not found")
    if exam.career_id is None:
        return exam

    licensed = db.query(SchoolCareerLicense.id).filter(
        SchoolCareerLicense.school_id == school_id,
        SchoolCareerLicense.career_id == exam.career_id,
        SchoolCareerLicense.status == LICENSE_ACTIVE,
    ).first()
    if not licensed:
        raise PermissionDeniedError("Exam is not available for your school")
    return exam
