"""Exam question allocator.

Turns an exam's distribution rows into a concrete, duplicate-free list of
exam questions. Candidates are fetched least-used first and a uniformly
random subset of the required size is drawn from each pool. The generated
list and the usage counter increments are written in one transaction.
"""
import logging
import random
from typing import List, Optional, Set

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from careerhub.core.errors import (
    ConflictError,
    InsufficientQuestionsError,
    NotFoundError,
    ValidationError,
)
from careerhub.models import (
    Exam,
    ExamAttempt,
    ExamQuestion,
    ExamQuestionDistribution,
    Question,
)
from careerhub.models.question import EASY, HARD, MEDIUM

logger = logging.getLogger(__name__)


class ExamQuestionAllocator:
    def __init__(self, db: Session, rng: Optional[random.Random] = None):
        self.db = db
        self.rng = rng or random.Random()

    def generate(self, exam_id) -> int:
        """Select and persist questions for every distribution of an exam.

        Returns the number of exam questions created. Nothing is written if
        any distribution tier lacks enough candidates.
        """
        exam = self.db.query(Exam).filter(Exam.id == exam_id).first()
        if not exam:
            raise NotFoundError("Exam not found")

        distributions = self.db.query(ExamQuestionDistribution).filter(
            ExamQuestionDistribution.exam_id == exam.id
        ).order_by(ExamQuestionDistribution.order_index).all()

        if not distributions:
            raise ValidationError("No distributions configured for this exam")

        existing = self.db.query(ExamQuestion.id).filter(ExamQuestion.exam_id == exam.id).first()
        if existing:
            raise ConflictError(
                "Exam questions already exist for this exam. Delete them before regenerating"
            )

        entries: List[ExamQuestion] = []
        picked: Set = set()
        order_index = 1

        for dist in distributions:
            for question in self._select_for_distribution(dist, picked):
                picked.add(question.id)
                entries.append(ExamQuestion(
                    exam_id=exam.id,
                    question_id=question.id,
                    order_index=order_index,
                    points=dist.points_per_question,
                ))
                order_index += 1

        try:
            self.db.add_all(entries)
            self.db.query(Question).filter(Question.id.in_(list(picked))).update(
                {Question.usage_count: Question.usage_count + 1},
                synchronize_session=False,
            )
            self.db.commit()
        except IntegrityError:
            # another generate call for this exam committed first
            self.db.rollback()
            logger.warning("Concurrent question generation detected for exam %s", exam.id)
            raise ConflictError(
                "Exam questions already exist for this exam. Delete them before regenerating"
            )
        except Exception:
            self.db.rollback()
            logger.exception("Failed to persist generated questions for exam %s", exam.id)
            raise

        logger.info(
            "Generated %d questions for exam %s from %d distributions",
            len(entries), exam.id, len(distributions),
        )
        return len(entries)

    def _select_for_distribution(self, dist: ExamQuestionDistribution, exclude: Set) -> List[Question]:
        tiers = [
            (level, count)
            for level, count in (
                (EASY, dist.easy_count or 0),
                (MEDIUM, dist.medium_count or 0),
                (HARD, dist.hard_count or 0),
            )
            if count > 0
        ]

        # no tier counts: quantity is a flat target under the row's own difficulty
        if not tiers:
            return self._draw(dist, dist.difficulty_level, dist.quantity, exclude)

        selected: List[Question] = []
        for level, count in tiers:
            selected.extend(self._draw(dist, level, count, exclude))
        return selected

    def _draw(self, dist: ExamQuestionDistribution, difficulty: Optional[str], count: int, exclude: Set) -> List[Question]:
        if count <= 0:
            return []

        query = self.db.query(Question).filter(Question.is_active.is_(True))
        if difficulty:
            query = query.filter(Question.difficulty_level == difficulty)
        if dist.category_id:
            query = query.filter(Question.category_id == dist.category_id)
        if dist.career_criteria_id:
            query = query.filter(Question.career_criteria_id == dist.career_criteria_id)
        if dist.question_type:
            query = query.filter(Question.question_type == dist.question_type)
        if exclude:
            query = query.filter(Question.id.notin_(list(exclude)))

        candidates = query.order_by(Question.usage_count.asc(), Question.id).all()

        if len(candidates) < count:
            label = difficulty or "ANY"
            logger.warning(
                "Insufficient pool for distribution %s (%s): need %d, available %d",
                dist.order_index, label, count, len(candidates),
            )
            raise InsufficientQuestionsError(
                f"Not enough {label} questions for distribution {dist.order_index}. "
                f"Need {count}, available {len(candidates)}"
            )

        return self.rng.sample(candidates, count)


def generate_exam_questions(db: Session, exam_id, rng: Optional[random.Random] = None) -> int:
    return ExamQuestionAllocator(db, rng=rng).generate(exam_id)


def delete_exam_questions(db: Session, exam_id) -> int:
    """Remove an exam's generated questions so it can be regenerated."""
    exam = db.query(Exam).filter(Exam.id == exam_id).first()
    if not exam:
        raise NotFoundError("Exam not found")

    attempt_count = db.query(ExamAttempt).filter(ExamAttempt.exam_id == exam.id).count()
    if attempt_count > 0:
        raise ConflictError(
            f"Cannot delete exam questions with {attempt_count} existing attempts"
        )

    deleted = db.query(ExamQuestion).filter(ExamQuestion.exam_id == exam.id).delete(
        synchronize_session=False
    )
    db.commit()
    logger.info("Deleted %d generated questions of exam %s", deleted, exam.id)
    return deleted


def list_exam_questions(db: Session, exam_id) -> List[ExamQuestion]:
    exam = db.query(Exam).filter(Exam.id == exam_id).first()
    if not exam:
        raise NotFoundError("Exam not found")

    return db.query(ExamQuestion).options(
        selectinload(ExamQuestion.question).selectinload(Question.options)
    ).filter(ExamQuestion.exam_id == exam.id).order_by(ExamQuestion.order_index).all()
