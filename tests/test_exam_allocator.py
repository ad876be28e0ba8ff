import random

import pytest

from careerhub.core.errors import ConflictError, InsufficientQuestionsError, ValidationError
from careerhub.db.sessions import SessionLocal
from careerhub.models import ExamAttempt, ExamQuestion, Question
from careerhub.models.question import ESSAY, MULTIPLE_CHOICE
from careerhub.services.exam_allocator import (
    ExamQuestionAllocator,
    delete_exam_questions,
    generate_exam_questions,
    list_exam_questions,
)
from careerhub.services.exams import create_exam


def _usage(db):
    db.expire_all()
    return {q.id: q.usage_count for q in db.query(Question).all()}


def test_generate_fills_tiers_and_flat_quantity(db, factory):
    category = factory.category()
    for _ in range(3):
        factory.question("EASY", category=category)
        factory.question("MEDIUM", category=category)
        factory.question("HARD", category=category)
    for _ in range(2):
        factory.question("HARD", question_type=ESSAY)

    exam = factory.exam([
        {"quantity": 4, "easy_count": 2, "medium_count": 1, "hard_count": 1,
         "category_id": category.id, "points_per_question": 2},
        {"quantity": 2, "difficulty_level": "HARD", "question_type": ESSAY},
    ])

    count = ExamQuestionAllocator(db, rng=random.Random(7)).generate(exam.id)

    assert count == 6
    rows = list_exam_questions(db, exam.id)
    assert [row.order_index for row in rows] == [1, 2, 3, 4, 5, 6]
    assert len({row.question_id for row in rows}) == 6

    first, second = rows[:4], rows[4:]
    assert all(row.question.category_id == category.id for row in first)
    assert [row.question.difficulty_level for row in first].count("EASY") == 2
    assert all(float(row.points) == 2 for row in first)
    assert all(row.question.question_type == ESSAY for row in second)


def test_generate_increments_usage_once_per_selected_question(db, factory):
    questions = [factory.question("EASY") for _ in range(3)]
    exam = factory.exam([{"quantity": 2, "easy_count": 2}])

    ExamQuestionAllocator(db).generate(exam.id)

    usage = _usage(db)
    picked = {row.question_id for row in db.query(ExamQuestion).all()}
    for question in questions:
        assert usage[question.id] == (1 if question.id in picked else 0)


def test_generate_never_repeats_a_question_across_distributions(db, factory):
    for _ in range(4):
        factory.question("MEDIUM")
    exam = factory.exam([
        {"quantity": 2, "medium_count": 2},
        {"quantity": 2, "difficulty_level": "MEDIUM"},
    ])

    assert ExamQuestionAllocator(db).generate(exam.id) == 4
    ids = [row.question_id for row in db.query(ExamQuestion).all()]
    assert len(ids) == len(set(ids)) == 4


def test_shortage_writes_nothing(db, factory):
    factory.question("EASY")
    factory.question("HARD")
    factory.question("HARD", is_active=False)
    exam = factory.exam([
        {"quantity": 1, "easy_count": 1},
        {"quantity": 2, "hard_count": 2},
    ])
    before = _usage(db)

    with pytest.raises(InsufficientQuestionsError) as excinfo:
        ExamQuestionAllocator(db).generate(exam.id)

    assert "Need 2, available 1" in excinfo.value.message
    assert db.query(ExamQuestion).count() == 0
    assert _usage(db) == before


def test_filters_restrict_candidates(db, factory):
    career = factory.career()
    criteria = factory.criteria(career)
    factory.question("EASY", criteria=criteria)
    factory.question("EASY")
    factory.question("EASY", criteria=criteria, question_type=ESSAY)
    exam = factory.exam([
        {"quantity": 1, "easy_count": 1, "career_criteria_id": criteria.id, "question_type": MULTIPLE_CHOICE},
    ])

    ExamQuestionAllocator(db).generate(exam.id)

    row = db.query(ExamQuestion).one()
    assert row.question.career_criteria_id == criteria.id
    assert row.question.question_type == MULTIPLE_CHOICE


def test_regenerate_requires_delete(db, factory):
    for _ in range(2):
        factory.question("EASY")
    exam = factory.exam([{"quantity": 1, "easy_count": 1}])
    allocator = ExamQuestionAllocator(db)
    allocator.generate(exam.id)

    with pytest.raises(ConflictError):
        allocator.generate(exam.id)

    assert delete_exam_questions(db, exam.id) == 1
    assert allocator.generate(exam.id) == 1


def test_delete_blocked_once_attempts_exist(db, factory):
    factory.question("EASY")
    student = factory.user()
    exam = factory.exam([{"quantity": 1, "easy_count": 1}])
    ExamQuestionAllocator(db).generate(exam.id)
    db.add(ExamAttempt(exam_id=exam.id, student_id=student.id, max_score=1))
    db.commit()

    with pytest.raises(ConflictError):
        delete_exam_questions(db, exam.id)
    assert db.query(ExamQuestion).count() == 1


def test_exam_without_distributions_is_rejected(db, factory):
    exam = factory.exam([])
    with pytest.raises(ValidationError):
        ExamQuestionAllocator(db).generate(exam.id)


def test_seeded_generation_is_reproducible(db, factory):
    for _ in range(6):
        factory.question("EASY")
    exam = factory.exam([{"quantity": 3, "easy_count": 3}])

    generate_exam_questions(db, exam.id, rng=random.Random(42))
    first = [row.question_id for row in list_exam_questions(db, exam.id)]
    delete_exam_questions(db, exam.id)

    # usage counts changed, so reset them to get the same pool order
    db.query(Question).update({Question.usage_count: 0})
    db.commit()
    generate_exam_questions(db, exam.id, rng=random.Random(42))
    second = [row.question_id for row in list_exam_questions(db, exam.id)]

    assert first == second


def test_interleaved_generate_keeps_a_single_question_list(db, factory):
    questions = [factory.question("EASY") for _ in range(4)]
    exam = factory.exam([{"quantity": 2, "easy_count": 2}])

    slow = ExamQuestionAllocator(db, rng=random.Random(1))
    select = slow._select_for_distribution

    def select_after_other_commit(dist, exclude):
        # a second request finishes its whole generate between our check and our write
        other = SessionLocal()
        try:
            assert ExamQuestionAllocator(other, rng=random.Random(2)).generate(exam.id) == 2
        finally:
            other.close()
        return select(dist, exclude)

    slow._select_for_distribution = select_after_other_commit

    with pytest.raises(ConflictError):
        slow.generate(exam.id)

    rows = list_exam_questions(db, exam.id)
    assert [row.order_index for row in rows] == [1, 2]
    usage = _usage(db)
    assert sum(usage[q.id] for q in questions) == 2


def test_zero_points_per_question_is_kept(db, factory):
    factory.question("EASY")
    exam = create_exam(db, {
        "title": "Practice round",
        "distributions": [{"quantity": 1, "easy_count": 1, "points_per_question": 0}],
    })

    assert exam.distributions[0].points_per_question == 0
    ExamQuestionAllocator(db).generate(exam.id)
    assert db.query(ExamQuestion).one().points == 0


def test_negative_points_per_question_is_rejected(db, factory):
    with pytest.raises(ValidationError):
        create_exam(db, {
            "title": "Broken",
            "distributions": [{"quantity": 1, "points_per_question": -1}],
        })
