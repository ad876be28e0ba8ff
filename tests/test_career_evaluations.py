import pytest

from careerhub.core.errors import NotFoundError, PermissionDeniedError, ValidationError
from careerhub.models import StudentCareerEvaluation
from careerhub.models.evaluation import NOT_SUITABLE, SUITABLE, VERY_SUITABLE
from careerhub.models.user import ROLE_SCHOOL
from careerhub.services import career_evaluations as evaluation_service


@pytest.fixture
def configured_class(db, factory):
    """A class learning two criteria of one career, and one of its students."""
    school = factory.school()
    school_class = factory.school_class(school)
    career = factory.career()
    logic = factory.criteria(career, "Logical thinking", 0)
    design = factory.criteria(career, "Design sense", 1)
    factory.class_criteria(school_class, career, [logic, design])
    teacher = factory.user(ROLE_SCHOOL, school=school)
    student = factory.user(school=school, school_class=school_class)
    return school, school_class, career, logic, design, teacher, student


def _configure(db, school, school_class, career, logic, design):
    evaluation_service.configure_criteria_weights(db, school.id, school_class.id, career.id, [
        {"criteria_id": logic.id, "weight": 60},
        {"criteria_id": design.id, "weight": 40},
    ])
    evaluation_service.configure_evaluation_thresholds(db, school.id, school_class.id, career.id, 150, 100)


def test_weights_must_total_100(db, configured_class):
    school, school_class, career, logic, design, _, _ = configured_class

    with pytest.raises(ValidationError) as excinfo:
        evaluation_service.configure_criteria_weights(db, school.id, school_class.id, career.id, [
            {"criteria_id": logic.id, "weight": 60},
            {"criteria_id": design.id, "weight": 30},
        ])
    assert "current: 90%" in excinfo.value.message


def test_weights_only_for_configured_criteria(db, factory, configured_class):
    school, school_class, career, logic, _, _, _ = configured_class
    stray = factory.criteria(career, "Not taught")

    with pytest.raises(ValidationError):
        evaluation_service.configure_criteria_weights(db, school.id, school_class.id, career.id, [
            {"criteria_id": logic.id, "weight": 50},
            {"criteria_id": stray.id, "weight": 50},
        ])


def test_weights_replace_previous_set(db, configured_class):
    school, school_class, career, logic, design, _, _ = configured_class
    _configure(db, school, school_class, career, logic, design)

    evaluation_service.configure_criteria_weights(db, school.id, school_class.id, career.id, [
        {"criteria_id": logic.id, "weight": 25},
        {"criteria_id": design.id, "weight": 75},
    ])

    data = evaluation_service.get_criteria_weights(db, school.id, school_class.id, career.id)
    assert [(w.criteria_id, w.weight) for w in data["weights"]] == [(design.id, 75), (logic.id, 25)]
    assert data["total_weight"] == 100
    assert data["is_valid"] is True


def test_other_school_class_is_hidden(db, factory, configured_class):
    _, school_class, career, logic, design, _, _ = configured_class
    other = factory.school("Other school")

    with pytest.raises(NotFoundError):
        evaluation_service.get_criteria_weights(db, other.id, school_class.id, career.id)


def test_thresholds_validation(db, configured_class):
    school, school_class, career, _, _, _, _ = configured_class

    with pytest.raises(ValidationError):
        evaluation_service.configure_evaluation_thresholds(db, school.id, school_class.id, career.id, 100, 100)
    with pytest.raises(ValidationError) as excinfo:
        evaluation_service.configure_evaluation_thresholds(db, school.id, school_class.id, career.id, 250, 100)
    assert "max_score: 200" in excinfo.value.message

    threshold = evaluation_service.configure_evaluation_thresholds(db, school.id, school_class.id, career.id, 150, 100)
    assert threshold.max_score == 200

    updated = evaluation_service.configure_evaluation_thresholds(db, school.id, school_class.id, career.id, 160, 90)
    assert updated.id == threshold.id
    assert (updated.very_suitable_min, updated.suitable_min) == (160, 90)


def test_submit_scores_and_classifies(db, configured_class):
    school, school_class, career, logic, design, _, student = configured_class
    _configure(db, school, school_class, career, logic, design)

    evaluation, breakdown = evaluation_service.submit_career_evaluation(db, student, school_class.id, career.id, [
        {"criteria_id": logic.id, "score": 90},
        {"criteria_id": design.id, "score": 50},
    ])

    assert evaluation.weighted_score == 148
    assert evaluation.max_score == 200
    assert evaluation.percentage == 74
    assert evaluation.evaluation_result == SUITABLE
    assert breakdown == {
        "weighted_sum": 74.0,
        "criteria_count": 2,
        "final_score": 148.0,
        "max_score": 200,
        "percentage": 74.0,
    }


def test_resubmission_keeps_unsent_scores(db, configured_class):
    school, school_class, career, logic, design, _, student = configured_class
    _configure(db, school, school_class, career, logic, design)

    first, _ = evaluation_service.submit_career_evaluation(db, student, school_class.id, career.id, [
        {"criteria_id": logic.id, "score": 90},
    ])
    assert first.weighted_score == 108
    assert first.evaluation_result == SUITABLE

    second, _ = evaluation_service.submit_career_evaluation(db, student, school_class.id, career.id, [
        {"criteria_id": design.id, "score": 100},
    ])

    assert second.id == first.id
    assert second.weighted_score == 188
    assert second.evaluation_result == VERY_SUITABLE
    assert db.query(StudentCareerEvaluation).count() == 1

    details = {d["criteria_id"]: d for d in evaluation_service.detailed_scores(db, second)}
    assert details[str(logic.id)] == {"criteria_id": str(logic.id), "raw_score": 90, "weight": 60, "weighted_score": 54.0}
    assert details[str(design.id)]["weighted_score"] == 40.0


def test_submit_requires_weights_and_thresholds(db, configured_class):
    school, school_class, career, logic, design, _, student = configured_class
    scores = [{"criteria_id": logic.id, "score": 10}]

    with pytest.raises(ValidationError) as excinfo:
        evaluation_service.submit_career_evaluation(db, student, school_class.id, career.id, scores)
    assert "weights" in excinfo.value.message

    evaluation_service.configure_criteria_weights(db, school.id, school_class.id, career.id, [
        {"criteria_id": logic.id, "weight": 50},
        {"criteria_id": design.id, "weight": 50},
    ])
    with pytest.raises(ValidationError) as excinfo:
        evaluation_service.submit_career_evaluation(db, student, school_class.id, career.id, scores)
    assert "thresholds" in excinfo.value.message
    assert db.query(StudentCareerEvaluation).count() == 0


def test_submit_rejects_bad_scores_and_other_classes(db, factory, configured_class):
    school, school_class, career, logic, design, _, student = configured_class
    _configure(db, school, school_class, career, logic, design)
    stray = factory.criteria(career, "Not taught")

    with pytest.raises(ValidationError):
        evaluation_service.submit_career_evaluation(db, student, school_class.id, career.id, [
            {"criteria_id": logic.id, "score": 101},
        ])
    with pytest.raises(ValidationError):
        evaluation_service.submit_career_evaluation(db, student, school_class.id, career.id, [
            {"criteria_id": stray.id, "score": 50},
        ])

    outsider = factory.user(school=school, school_class=factory.school_class(school, "10A2"))
    with pytest.raises(PermissionDeniedError):
        evaluation_service.submit_career_evaluation(db, outsider, school_class.id, career.id, [
            {"criteria_id": logic.id, "score": 50},
        ])


def test_statistics_and_results(db, factory, configured_class):
    school, school_class, career, logic, design, _, student = configured_class
    _configure(db, school, school_class, career, logic, design)
    classmate = factory.user(school=school, school_class=school_class)

    evaluation_service.submit_career_evaluation(db, student, school_class.id, career.id, [
        {"criteria_id": logic.id, "score": 100},
        {"criteria_id": design.id, "score": 100},
    ])
    evaluation_service.submit_career_evaluation(db, classmate, school_class.id, career.id, [
        {"criteria_id": logic.id, "score": 0},
    ])

    stats = evaluation_service.get_evaluation_statistics(db, school.id, school_class.id, career.id)
    assert stats["total_evaluations"] == 2
    assert stats["summary"]["very_suitable"] == {"count": 1, "percentage": 50.0}
    assert stats["summary"]["suitable"] == {"count": 0, "percentage": 0.0}
    assert stats["summary"]["not_suitable"]["count"] == 1
    assert stats["average_score"] == 100.0
    assert stats["average_percentage"] == 50.0

    results = evaluation_service.list_my_evaluations(db, classmate.id, career_id=career.id)
    assert [r.evaluation_result for r in results] == [NOT_SUITABLE]
