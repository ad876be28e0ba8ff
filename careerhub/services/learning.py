"""Student video learning progress per career criteria."""
import logging
import uuid
from typing import List, Optional

from sqlalchemy.orm import Session

from careerhub.core.errors import NotFoundError, ValidationError
from careerhub.models import CareerCriteria, StudentLearningProgress
from careerhub.models.evaluation import LEARNING_COMPLETED, LEARNING_STATUSES

logger = logging.getLogger(__name__)

PAYLOAD_FIELDS = ("career_id", "criteria_id", "current_time", "last_watched_position", "status")


def _to_float(value, field: str) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a number")


def _to_uuid(value, field: str) -> uuid.UUID:
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise ValidationError(f"{field} must be a valid id")


def parse_learning_payload(raw: str) -> dict:
    """
    Parse the player's comma-delimited report:
    `career_id,criteria_id,current_time,last_watched_position,status`.
    """
    values = [segment.strip() for segment in (raw or "").split(",")]
    values += [""] * (len(PAYLOAD_FIELDS) - len(values))
    parsed = dict(zip(PAYLOAD_FIELDS, values))

    missing = [field for field in PAYLOAD_FIELDS if not parsed[field]]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    return {
        "career_id": _to_uuid(parsed["career_id"], "career_id"),
        "criteria_id": _to_uuid(parsed["criteria_id"], "criteria_id"),
        "current_time": _to_float(parsed["current_time"], "current_time"),
        "last_watched_position": _to_float(parsed["last_watched_position"], "last_watched_position"),
        "status": parsed["status"],
    }


def progress_percent(current_time: Optional[float], last_watched_position: Optional[float]) -> Optional[float]:
    """Watched share of the video, clamped to 0..100. None when it cannot be computed."""
    if current_time is None or last_watched_position is None or current_time <= 0:
        return None
    return min(max(last_watched_position / current_time * 100, 0.0), 100.0)


def upsert_learning_progress(
    db: Session,
    student_id,
    career_id,
    criteria_id,
    status: str,
    current_time: Optional[float] = None,
    last_watched_position: Optional[float] = None,
) -> StudentLearningProgress:
    """
    Record how far a student got in a criteria video.

    A COMPLETED record is final: later reports return it unchanged.
    Values that are not reported keep their stored value.
    """
    normalized_status = (status or "").strip().upper()
    if normalized_status not in LEARNING_STATUSES:
        raise ValidationError(f"status must be one of {', '.join(LEARNING_STATUSES)}")

    criteria = db.query(CareerCriteria).filter(CareerCriteria.id == criteria_id).first()
    if not criteria or criteria.career_id != career_id:
        raise NotFoundError("Career criteria not found")

    progress = db.query(StudentLearningProgress).filter(
        StudentLearningProgress.student_id == student_id,
        StudentLearningProgress.career_id == career_id,
        StudentLearningProgress.criteria_id == criteria_id,
    ).first()

    if progress and progress.status == LEARNING_COMPLETED:
        return progress

    if not progress:
        progress = StudentLearningProgress(student_id=student_id, career_id=career_id, criteria_id=criteria_id)
        db.add(progress)

    percent = progress_percent(current_time, last_watched_position)
    if current_time is not None:
        progress.video_duration = current_time
    if last_watched_position is not None:
        progress.last_watched_position = last_watched_position
    if percent is not None:
        progress.progress_percent = percent
    progress.status = normalized_status

    try:
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(progress)
    logger.info(
        "Learning progress of student %s on criteria %s: %s (%.1f%%)",
        student_id, criteria_id, progress.status, progress.progress_percent or 0,
    )
    return progress


def list_completed_criteria(db: Session, student_id, career_id) -> List[StudentLearningProgress]:
    return db.query(StudentLearningProgress).filter(
        StudentLearningProgress.student_id == student_id,
        StudentLearningProgress.career_id == career_id,
        StudentLearningProgress.status == LEARNING_COMPLETED,
    ).order_by(StudentLearningProgress.updated_at.desc()).all()
