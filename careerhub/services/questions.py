"""Question categories and the question bank."""
import logging
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session, selectinload

from careerhub.core.errors import ConflictError, NotFoundError, ValidationError
from careerhub.models import (
    CareerCriteria,
    ExamQuestion,
    ExamQuestionDistribution,
    Question,
    QuestionCategory,
    QuestionOption,
)
from careerhub.models.question import AUTO_GRADED_TYPES
from careerhub.utils.pagination import Paging

logger = logging.getLogger(__name__)

QUESTION_FIELDS = (
    "content",
    "question_type",
    "difficulty_level",
    "category_id",
    "career_criteria_id",
    "points",
    "explanation",
    "is_active",
)


# Categories

def get_category(db: Session, category_id) -> QuestionCategory:
    category = db.query(QuestionCategory).filter(QuestionCategory.id == category_id).first()
    if not category:
        raise NotFoundError("Category not found")
    return category


def create_category(db: Session, name: str, description: Optional[str] = None, order_index: int = 0) -> QuestionCategory:
    category = QuestionCategory(name=name, description=description, order_index=order_index)
    db.add(category)
    db.commit()
    db.refresh(category)
    return category


def list_categories(db: Session) -> List[QuestionCategory]:
    return db.query(QuestionCategory).order_by(QuestionCategory.order_index, QuestionCategory.name).all()


def update_category(db: Session, category_id, data: dict) -> QuestionCategory:
    category = get_category(db, category_id)
    for field in ("name", "description", "order_index"):
        if data.get(field) is not None:
            setattr(category, field, data[field])
    db.commit()
    db.refresh(category)
    return category


def delete_category(db: Session, category_id) -> None:
    category = get_category(db, category_id)

    in_use = db.query(Question).filter(Question.category_id == category.id).count()
    if in_use:
        raise ConflictError(f"Cannot delete category with {in_use} questions")
    referenced = db.query(ExamQuestionDistribution).filter(
        ExamQuestionDistribution.category_id == category.id
    ).count()
    if referenced:
        raise ConflictError("Cannot delete category. It is used by exam distributions")

    db.delete(category)
    db.commit()


# Questions

def _validate_references(db: Session, category_id=None, career_criteria_id=None) -> None:
    if category_id is not None:
        get_category(db, category_id)
    if career_criteria_id is not None:
        if not db.query(CareerCriteria).filter(CareerCriteria.id == career_criteria_id).first():
            raise NotFoundError("Career criteria not found")


def _validate_options(question_type: str, options: List[dict]) -> None:
    if question_type in AUTO_GRADED_TYPES:
        if not options:
            raise ValidationError(f"{question_type} questions require options")
        if not any(opt.get("is_correct") for opt in options):
            raise ValidationError(f"{question_type} questions require at least one correct option")


def _build_options(options: List[dict]) -> List[QuestionOption]:
    return [
        QuestionOption(
            option_key=opt["option_key"],
            option_text=opt["option_text"],
            is_correct=bool(opt.get("is_correct")),
            order_index=opt["order_index"] if opt.get("order_index") is not None else idx,
        )
        for idx, opt in enumerate(options)
    ]


def get_question(db: Session, question_id) -> Question:
    question = db.query(Question).options(selectinload(Question.options)).filter(
        Question.id == question_id
    ).first()
    if not question:
        raise NotFoundError("Question not found")
    return question


def list_questions(
    db: Session,
    paging: Paging,
    category_id=None,
    career_criteria_id=None,
    question_type: Optional[str] = None,
    difficulty_level: Optional[str] = None,
    is_active: Optional[bool] = None,
    search: Optional[str] = None,
) -> Tuple[List[Question], int]:
    query = db.query(Question)
    if category_id:
        query = query.filter(Question.category_id == category_id)
    if career_criteria_id:
        query = query.filter(Question.career_criteria_id == career_criteria_id)
    if question_type:
        query = query.filter(Question.question_type == question_type)
    if difficulty_level:
        query = query.filter(Question.difficulty_level == difficulty_level)
    if is_active is not None:
        query = query.filter(Question.is_active.is_(is_active))
    if search:
        query = query.filter(Question.content.ilike(f"%{search}%"))

    total = query.count()
    questions = query.options(selectinload(Question.options)).order_by(
        Question.created_at.desc()
    ).offset(paging.skip).limit(paging.limit).all()
    return questions, total


def create_question(db: Session, data: dict, created_by=None) -> Question:
    """Create a question and its options in one transaction."""
    options = data.get("options") or []
    _validate_references(db, data.get("category_id"), data.get("career_criteria_id"))
    _validate_options(data["question_type"], options)

    question = Question(
        created_by=created_by,
        **{k: v for k, v in data.items() if k in QUESTION_FIELDS and v is not None},
    )
    question.options = _build_options(options)

    try:
        db.add(question)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(question)
    logger.info("Created question %s (%s, %s)", question.id, question.question_type, question.difficulty_level)
    return question


def update_question(db: Session, question_id, data: dict) -> Question:
    question = get_question(db, question_id)
    _validate_references(db, data.get("category_id"), data.get("career_criteria_id"))

    new_type = data.get("question_type")
    if new_type is not None and new_type != question.question_type:
        if db.query(ExamQuestion.id).filter(ExamQuestion.question_id == question.id).first():
            raise ConflictError("Cannot change question type. It is being used in exams")
        _validate_options(new_type, [
            {"option_key": opt.option_key, "is_correct": opt.is_correct}
            for opt in question.options
        ])

    for field in QUESTION_FIELDS:
        if field in data and data[field] is not None:
            setattr(question, field, data[field])

    db.commit()
    db.refresh(question)
    return question


def replace_question_options(db: Session, question_id, options: List[dict]) -> Question:
    question = get_question(db, question_id)
    _validate_options(question.question_type, options)

    try:
        question.options.clear()
        db.flush()
        question.options.extend(_build_options(options))
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(question)
    return question


def delete_question(db: Session, question_id) -> None:
    question = get_question(db, question_id)

    if db.query(ExamQuestion.id).filter(ExamQuestion.question_id == question.id).first():
        raise ConflictError("Cannot delete question. It is being used in exams")

    db.delete(question)
    db.commit()
    logger.info("Deleted question %s", question.id)
