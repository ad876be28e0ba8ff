"""Career suitability evaluation.

Schools weight the criteria a class learns for a career (weights add up to
100) and set two score thresholds. Students then score themselves 0-100 per
criteria; the weighted result is compared with the thresholds to classify
the career as VERY_SUITABLE, SUITABLE or NOT_SUITABLE for them.
"""
import logging
import uuid
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from careerhub.core.errors import NotFoundError, PermissionDeniedError, ValidationError
from careerhub.models import (
    CareerEvaluationThreshold,
    ClassCriteriaConfig,
    ClassCriteriaWeight,
    SchoolClass,
    StudentCareerEvaluation,
    User,
)
from careerhub.models.evaluation import NOT_SUITABLE, SUITABLE, VERY_SUITABLE
from careerhub.utils.timeutils import utcnow

logger = logging.getLogger(__name__)

MAX_CRITERIA_SCORE = 100
WEIGHT_TOLERANCE = 0.001


def _school_class(db: Session, school_id, class_id) -> SchoolClass:
    school_class = db.query(SchoolClass).filter(SchoolClass.id == class_id).first()
    if not school_class or school_class.school_id != school_id:
        raise NotFoundError("Class not found")
    return school_class


def _configured_criteria_ids(db: Session, class_id, career_id) -> List[uuid.UUID]:
    rows = db.query(ClassCriteriaConfig.criteria_id).filter(
        ClassCriteriaConfig.class_id == class_id,
        ClassCriteriaConfig.career_id == career_id,
    ).order_by(ClassCriteriaConfig.criteria_id).all()
    return [row.criteria_id for row in rows]


def _weights_of(db: Session, class_id, career_id) -> List[ClassCriteriaWeight]:
    return db.query(ClassCriteriaWeight).filter(
        ClassCriteriaWeight.class_id == class_id,
        ClassCriteriaWeight.career_id == career_id,
    ).order_by(ClassCriteriaWeight.weight.desc()).all()


def classify(score: float, very_suitable_min: float, suitable_min: float) -> str:
    if score >= very_suitable_min:
        return VERY_SUITABLE
    if score >= suitable_min:
        return SUITABLE
    return NOT_SUITABLE


# School configuration

def configure_criteria_weights(
    db: Session,
    school_id,
    class_id,
    career_id,
    weights: List[dict],
    created_by=None,
) -> List[ClassCriteriaWeight]:
    """
    Replace the criteria weights of a class for a career.

    Raises:
        ValidationError: weights do not add up to 100, a criteria appears
            twice, or a criteria is not configured for the class
    """
    school_class = _school_class(db, school_id, class_id)

    total = sum(w["weight"] for w in weights)
    if abs(total - 100) > WEIGHT_TOLERANCE:
        raise ValidationError(f"Total weight must be 100%, current: {total:g}%")

    criteria_ids = [w["criteria_id"] for w in weights]
    if len(set(criteria_ids)) != len(criteria_ids):
        raise ValidationError("Duplicate criteria in weights")

    configured = set(_configured_criteria_ids(db, school_class.id, career_id))
    missing = [str(criteria_id) for criteria_id in criteria_ids if criteria_id not in configured]
    if missing:
        raise ValidationError(f"Criteria not configured for class: {', '.join(missing)}")

    try:
        db.query(ClassCriteriaWeight).filter(
            ClassCriteriaWeight.class_id == school_class.id,
            ClassCriteriaWeight.career_id == career_id,
        ).delete(synchronize_session=False)
        rows = [
            ClassCriteriaWeight(
                class_id=school_class.id,
                career_id=career_id,
                criteria_id=w["criteria_id"],
                weight=w["weight"],
                created_by=created_by,
            )
            for w in weights
        ]
        db.add_all(rows)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("Class %s weighted %d criteria for career %s", school_class.id, len(rows), career_id)
    return rows


def get_criteria_weights(db: Session, school_id, class_id, career_id) -> dict:
    school_class = _school_class(db, school_id, class_id)
    weights = _weights_of(db, school_class.id, career_id)
    total = sum(w.weight for w in weights)
    return {
        "class_id": school_class.id,
        "career_id": career_id,
        "weights": weights,
        "total_weight": total,
        "is_valid": abs(total - 100) <= WEIGHT_TOLERANCE,
    }


def configure_evaluation_thresholds(
    db: Session,
    school_id,
    class_id,
    career_id,
    very_suitable_min: float,
    suitable_min: float,
    created_by=None,
) -> CareerEvaluationThreshold:
    """Create or replace the thresholds of a class for a career.

    Thresholds are on the final-score scale, whose maximum is 100 per
    configured criteria.
    """
    school_class = _school_class(db, school_id, class_id)

    if very_suitable_min <= suitable_min:
        raise ValidationError("very_suitable_min must be greater than suitable_min")

    criteria_count = len(_configured_criteria_ids(db, school_class.id, career_id))
    if not criteria_count:
        raise ValidationError("No criteria configured for this class and career")

    max_score = criteria_count * MAX_CRITERIA_SCORE
    if very_suitable_min > max_score or suitable_min > max_score:
        raise ValidationError(f"Thresholds must not exceed max_score: {max_score}")

    threshold = db.query(CareerEvaluationThreshold).filter(
        CareerEvaluationThreshold.class_id == school_class.id,
        CareerEvaluationThreshold.career_id == career_id,
    ).first()
    if not threshold:
        threshold = CareerEvaluationThreshold(
            class_id=school_class.id, career_id=career_id, created_by=created_by
        )
        db.add(threshold)

    threshold.max_score = max_score
    threshold.very_suitable_min = very_suitable_min
    threshold.suitable_min = suitable_min

    try:
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(threshold)
    return threshold


def get_evaluation_thresholds(db: Session, school_id, class_id, career_id) -> Optional[CareerEvaluationThreshold]:
    school_class = _school_class(db, school_id, class_id)
    return db.query(CareerEvaluationThreshold).filter(
        CareerEvaluationThreshold.class_id == school_class.id,
        CareerEvaluationThreshold.career_id == career_id,
    ).first()


def get_evaluation_statistics(db: Session, school_id, class_id, career_id) -> dict:
    """Result distribution and averages of a class's evaluations for a career."""
    school_class = _school_class(db, school_id, class_id)
    evaluations = db.query(StudentCareerEvaluation).filter(
        StudentCareerEvaluation.class_id == school_class.id,
        StudentCareerEvaluation.career_id == career_id,
    ).all()

    total = len(evaluations)
    summary = {}
    for result in (VERY_SUITABLE, SUITABLE, NOT_SUITABLE):
        count = sum(1 for e in evaluations if e.evaluation_result == result)
        summary[result.lower()] = {
            "count": count,
            "percentage": round(count / total * 100, 2) if total else 0,
        }

    return {
        "class_id": school_class.id,
        "career_id": career_id,
        "total_evaluations": total,
        "summary": summary,
        "average_score": round(sum(e.weighted_score for e in evaluations) / total, 2) if total else 0,
        "average_percentage": round(sum(e.percentage for e in evaluations) / total, 2) if total else 0,
    }


# Student evaluation

def submit_career_evaluation(
    db: Session,
    student: User,
    class_id,
    career_id,
    scores: List[dict],
) -> Tuple[StudentCareerEvaluation, dict]:
    """
    Score a student's self-evaluation and store it as their latest result.

    Criteria left out of `scores` keep the score of the previous submission
    (0 on the first one). Returns the stored evaluation and a breakdown of
    the calculation.
    """
    if student.class_id != class_id:
        raise PermissionDeniedError("Student does not belong to this class")

    for item in scores:
        if item["score"] < 0 or item["score"] > MAX_CRITERIA_SCORE:
            raise ValidationError(f"All scores must be between 0 and {MAX_CRITERIA_SCORE}")

    required_ids = _configured_criteria_ids(db, class_id, career_id)
    if not required_ids:
        raise ValidationError("No criteria configured for this class and career")

    unknown = [str(item["criteria_id"]) for item in scores if item["criteria_id"] not in required_ids]
    if unknown:
        raise ValidationError(f"Criteria not configured for class: {', '.join(unknown)}")

    evaluation = db.query(StudentCareerEvaluation).filter(
        StudentCareerEvaluation.student_id == student.id,
        StudentCareerEvaluation.career_id == career_id,
        StudentCareerEvaluation.class_id == class_id,
    ).first()

    # raw_scores is JSON, so ids are stored as strings
    score_map = {str(criteria_id): 0.0 for criteria_id in required_ids}
    if evaluation and evaluation.raw_scores:
        for item in evaluation.raw_scores:
            if item["criteria_id"] in score_map:
                score_map[item["criteria_id"]] = item["score"]
    for item in scores:
        score_map[str(item["criteria_id"])] = float(item["score"])

    weight_map = {str(w.criteria_id): w.weight for w in _weights_of(db, class_id, career_id)}
    if not weight_map:
        raise ValidationError("Criteria weights not configured for this class")
    unweighted = [criteria_id for criteria_id in score_map if criteria_id not in weight_map]
    if unweighted:
        raise ValidationError(f"Weight not found for criteria: {', '.join(unweighted)}")

    threshold = db.query(CareerEvaluationThreshold).filter(
        CareerEvaluationThreshold.class_id == class_id,
        CareerEvaluationThreshold.career_id == career_id,
    ).first()
    if not threshold:
        raise ValidationError("Evaluation thresholds not configured for this class")

    weighted_sum = sum(score * weight_map[criteria_id] / 100 for criteria_id, score in score_map.items())
    criteria_count = len(required_ids)
    final_score = weighted_sum * criteria_count
    max_score = criteria_count * MAX_CRITERIA_SCORE
    percentage = final_score / max_score * 100
    result = classify(final_score, threshold.very_suitable_min, threshold.suitable_min)

    if not evaluation:
        evaluation = StudentCareerEvaluation(student_id=student.id, career_id=career_id, class_id=class_id)
        db.add(evaluation)

    evaluation.raw_scores = [
        {"criteria_id": criteria_id, "score": score} for criteria_id, score in score_map.items()
    ]
    evaluation.weighted_score = final_score
    evaluation.max_score = max_score
    evaluation.percentage = percentage
    evaluation.evaluation_result = result
    evaluation.evaluated_at = utcnow()

    try:
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(evaluation)
    logger.info(
        "Student %s evaluated career %s: %s (%.2f/%d)",
        student.id, career_id, result, final_score, max_score,
    )
    breakdown = {
        "weighted_sum": round(weighted_sum, 2),
        "criteria_count": criteria_count,
        "final_score": round(final_score, 2),
        "max_score": max_score,
        "percentage": round(percentage, 2),
    }
    return evaluation, breakdown


def detailed_scores(db: Session, evaluation: StudentCareerEvaluation) -> List[dict]:
    weight_map = {str(w.criteria_id): w.weight for w in _weights_of(db, evaluation.class_id, evaluation.career_id)}
    details = []
    for item in evaluation.raw_scores or []:
        weight = weight_map.get(item["criteria_id"])
        details.append({
            "criteria_id": item["criteria_id"],
            "raw_score": item["score"],
            "weight": weight,
            "weighted_score": round(item["score"] * weight / 100, 2) if weight is not None else 0,
        })
    return details


def list_my_evaluations(db: Session, student_id, career_id=None, class_id=None) -> List[StudentCareerEvaluation]:
    query = db.query(StudentCareerEvaluation).filter(StudentCareerEvaluation.student_id == student_id)
    if career_id:
        query = query.filter(StudentCareerEvaluation.career_id == career_id)
    if class_id:
        query = query.filter(StudentCareerEvaluation.class_id == class_id)
    return query.order_by(StudentCareerEvaluation.evaluated_at.desc()).all()
