"""Student exam attempts: starting, submitting, auto-grading and manual grading."""
import logging
from datetime import datetime
from typing import Any, Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session, selectinload

from careerhub.core.errors import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from careerhub.models import (
    Exam,
    ExamAttempt,
    ExamQuestion,
    Question,
    StudentAnswer,
    User,
)
from careerhub.models.exam import (
    ATTEMPT_GRADED,
    ATTEMPT_IN_PROGRESS,
    ATTEMPT_SUBMITTED,
)
from careerhub.models.question import AUTO_GRADED_TYPES, MANUALLY_GRADED_TYPES
from careerhub.utils.pagination import Paging
from careerhub.utils.timeutils import as_naive_utc, utcnow

logger = logging.getLogger(__name__)


def _load_exam_questions(db: Session, exam_id) -> List[ExamQuestion]:
    return db.query(ExamQuestion).options(
        selectinload(ExamQuestion.question).selectinload(Question.options)
    ).filter(ExamQuestion.exam_id == exam_id).order_by(ExamQuestion.order_index).all()


def start_attempt(db: Session, exam_id, student_id) -> Tuple[ExamAttempt, List[ExamQuestion]]:
    """Return the student's in-progress attempt for the exam, creating one if needed."""
    exam = db.query(Exam).filter(Exam.id == exam_id).first()
    if not exam:
        raise NotFoundError("Exam not found")

    exam_questions = _load_exam_questions(db, exam.id)
    if not exam_questions:
        raise ValidationError("No questions have been generated for this exam")

    attempt = db.query(ExamAttempt).filter(
        ExamAttempt.exam_id == exam.id,
        ExamAttempt.student_id == student_id,
        ExamAttempt.status == ATTEMPT_IN_PROGRESS,
    ).first()
    if attempt:
        return attempt, exam_questions

    attempt = ExamAttempt(
        exam_id=exam.id,
        student_id=student_id,
        status=ATTEMPT_IN_PROGRESS,
        start_time=utcnow(),
        max_score=sum(float(eq.points) for eq in exam_questions),
    )
    db.add(attempt)
    db.commit()
    db.refresh(attempt)
    logger.info("Student %s started attempt %s on exam %s", student_id, attempt.id, exam.id)
    return attempt, exam_questions


def normalize_selection(answer_data: Any) -> List[str]:
    """
    Reduce a submitted choice answer to a list of option ids.

    Accepts a single id, a list of ids, `{"selected": [...]}` or
    `{"option_id": ...}` / `{"value": ...}`.
    """
    if answer_data is None:
        return []
    if isinstance(answer_data, (list, tuple)):
        return [str(item) for item in answer_data]
    if isinstance(answer_data, dict):
        selected = answer_data.get("selected")
        if isinstance(selected, list):
            return [str(item) for item in selected]
        option_id = answer_data.get("option_id") or answer_data.get("value")
        return [str(option_id)] if option_id else []
    return [str(answer_data)]


def is_choice_correct(question: Question, answer_data: Any) -> bool:
    """Exact set match between the submitted and the correct option ids."""
    correct = sorted(str(opt.id) for opt in question.options if opt.is_correct)
    submitted = sorted(normalize_selection(answer_data))
    return bool(correct) and correct == submitted


def submit_attempt(
    db: Session,
    attempt_id,
    student_id,
    answers: Iterable[dict],
    now: Optional[datetime] = None,
) -> ExamAttempt:
    """
    Record a student's answers and auto-grade the choice questions.

    Every exam question gets an answer row. Choice questions are scored
    immediately; SHORT_ANSWER/ESSAY answers stay unscored until graded
    manually, unless left blank. The attempt is GRADED when every row is
    scored, SUBMITTED otherwise.
    """
    attempt = db.query(ExamAttempt).filter(ExamAttempt.id == attempt_id).first()
    if not attempt:
        raise NotFoundError("Exam attempt not found")
    if attempt.student_id != student_id:
        raise PermissionDeniedError("Attempt belongs to another student")
    if attempt.status != ATTEMPT_IN_PROGRESS:
        raise ConflictError("Exam already submitted")

    exam_questions = _load_exam_questions(db, attempt.exam_id)
    by_question = {str(eq.question_id): eq for eq in exam_questions}

    submitted = {}
    for ans in answers:
        key = str(ans["question_id"])
        if key not in by_question:
            raise ValidationError(f"Invalid question id: {key}")
        submitted[key] = ans.get("answer_data")

    records = []
    for key, eq in by_question.items():
        question = eq.question
        answer_data = submitted.get(key)
        max_score = float(eq.points)

        if question.question_type in AUTO_GRADED_TYPES:
            correct = is_choice_correct(question, answer_data)
            score, is_correct = (max_score if correct else 0.0), correct
        elif answer_data in (None, "", [], {}):
            score, is_correct = 0.0, False
        else:
            score, is_correct = None, None

        records.append(StudentAnswer(
            attempt_id=attempt.id,
            question_id=eq.question_id,
            answer_data=answer_data,
            is_correct=is_correct,
            score=score,
            max_score=max_score,
        ))

    submit_time = as_naive_utc(now) if now else utcnow()
    all_scored = all(r.score is not None for r in records)

    try:
        db.add_all(records)
        attempt.submit_time = submit_time
        attempt.duration_seconds = int((submit_time - attempt.start_time).total_seconds())
        attempt.total_score = sum(r.score for r in records if r.score is not None)
        attempt.is_auto_graded = True
        attempt.status = ATTEMPT_GRADED if all_scored else ATTEMPT_SUBMITTED
        if all_scored:
            attempt.graded_at = submit_time
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(attempt)
    logger.info(
        "Attempt %s submitted: %s/%s (%s)",
        attempt.id, attempt.total_score, attempt.max_score, attempt.status,
    )
    return attempt


def grade_answer(
    db: Session,
    answer_id,
    earned_score: float,
    grader_id,
    feedback: Optional[str] = None,
    school_id=None,
) -> StudentAnswer:
    """
    Manually score a SHORT_ANSWER or ESSAY answer and refresh the attempt totals.

    When `school_id` is given the answer must belong to one of that school's
    students.
    """
    try:
        score = float(earned_score)
    except (TypeError, ValueError):
        raise ValidationError("earned_score must be a number")
    if score < 0:
        raise ValidationError("earned_score must be >= 0")

    answer = db.query(StudentAnswer).filter(StudentAnswer.id == answer_id).first()
    if not answer:
        raise NotFoundError("Answer not found")
    if answer.max_score is not None and score > float(answer.max_score):
        raise ValidationError("earned_score cannot exceed max_score")

    question = db.query(Question).filter(Question.id == answer.question_id).first()
    if not question:
        raise NotFoundError("Question not found")
    if question.question_type not in MANUALLY_GRADED_TYPES:
        raise ValidationError("Only SHORT_ANSWER or ESSAY can be graded manually")

    attempt = db.query(ExamAttempt).filter(ExamAttempt.id == answer.attempt_id).first()
    if school_id is not None and not _student_in_school(db, attempt.student_id, school_id):
        raise NotFoundError("Answer not found")
    if attempt.status == ATTEMPT_IN_PROGRESS:
        raise ConflictError("Cannot grade an attempt that has not been submitted")

    graded_at = utcnow()
    answer.score = score
    answer.feedback = feedback
    answer.graded_by = grader_id
    answer.graded_at = graded_at
    answer.is_correct = None
    db.flush()

    siblings = db.query(StudentAnswer).filter(StudentAnswer.attempt_id == attempt.id).all()
    all_graded = all(a.score is not None for a in siblings)
    attempt.total_score = sum(float(a.score) for a in siblings if a.score is not None)
    attempt.max_score = sum(float(a.max_score) for a in siblings if a.max_score is not None)
    attempt.status = ATTEMPT_GRADED if all_graded else ATTEMPT_SUBMITTED
    if all_graded:
        attempt.graded_by = grader_id
        attempt.graded_at = graded_at

    db.commit()
    db.refresh(answer)
    logger.info("Answer %s graded %.2f by %s (attempt %s now %s)", answer.id, score, grader_id, attempt.id, attempt.status)
    return answer


def get_attempt(db: Session, attempt_id, student_id=None, school_id=None) -> ExamAttempt:
    attempt = db.query(ExamAttempt).options(selectinload(ExamAttempt.answers)).filter(
        ExamAttempt.id == attempt_id
    ).first()
    if not attempt:
        raise NotFoundError("Exam attempt not found")
    if student_id is not None and attempt.student_id != student_id:
        raise PermissionDeniedError("Attempt belongs to another student")
    if school_id is not None and not _student_in_school(db, attempt.student_id, school_id):
        raise NotFoundError("Exam attempt not found")
    return attempt


def _student_in_school(db: Session, student_id, school_id) -> bool:
    return db.query(User.id).filter(User.id == student_id, User.school_id == school_id).first() is not None


def list_attempts(
    db: Session,
    paging: Paging,
    exam_id=None,
    student_id=None,
    status: Optional[str] = None,
    school_id=None,
) -> Tuple[List[ExamAttempt], int]:
    query = db.query(ExamAttempt)
    if school_id:
        query = query.join(User, User.id == ExamAttempt.student_id).filter(User.school_id == school_id)
    if exam_id:
        query = query.filter(ExamAttempt.exam_id == exam_id)
    if student_id:
        query = query.filter(ExamAttempt.student_id == student_id)
    if status:
        query = query.filter(ExamAttempt.status == status)
    total = query.count()
    attempts = query.order_by(ExamAttempt.start_time.desc()).offset(paging.skip).limit(paging.limit).all()
    return attempts, total
