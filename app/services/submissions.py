"""
app/services/submissions.py
Contact submission lifecycle: create, list, mark contacted.
"""
import logging
import uuid
from typing import Any, Dict, List, Mapping

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import settings
from app.errors import NotFoundError, StorageError, ValidationError
from app.models import ContactSubmission, utcnow
from app.services.validation import normalize_phone, validate

logger = logging.getLogger(__name__)


def _clean_message(value: Any):
    if value is None:
        return None
    return str(value).strip() or None


def create_submission(db: Session, candidate: Mapping[str, Any]) -> ContactSubmission:
    result = validate(candidate)
    if not result.valid:
        raise ValidationError(result.field_errors, result.codes)

    now = utcnow()
    submission = ContactSubmission(
        id=str(uuid.uuid4()),
        name=str(candidate["name"]).strip(),
        phone_number=normalize_phone(candidate["phoneNumber"], settings.DEFAULT_COUNTRY_CODE),
        selected_service=str(candidate["selectedService"]).strip(),
        message=_clean_message(candidate.get("message")),
        contacted=False,
        contacted_at=None,
        created_at=now,
        updated_at=now,
    )
    try:
        db.add(submission)
        db.commit()
        db.refresh(submission)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"create_submission failed (id={submission.id}): {e}")
        raise StorageError("create_submission", submission.id) from e

    logger.info(f"Submission {submission.id} created ({submission.selected_service})")
    return submission


def list_submissions(db: Session) -> List[ContactSubmission]:
    try:
        return db.query(ContactSubmission).order_by(ContactSubmission.created_at.desc()).all()
    except SQLAlchemyError as e:
        logger.error(f"list_submissions failed: {e}")
        raise StorageError("list_submissions") from e


def get_submission(db: Session, submission_id: str) -> ContactSubmission:
    try:
        submission = db.query(ContactSubmission).filter(ContactSubmission.id == submission_id).first()
    except SQLAlchemyError as e:
        logger.error(f"get_submission failed (id={submission_id}): {e}")
        raise StorageError("get_submission", submission_id) from e
    if not submission:
        raise NotFoundError("submission", submission_id)
    return submission


def mark_contacted(db: Session, submission_id: str, sent: bool) -> ContactSubmission:
    """
    Pending <-> Contacted. Every sent=True call re-stamps contacted_at,
    sent=False clears it. Unknown ids never create a record.
    """
    submission = get_submission(db, submission_id)

    now = utcnow()
    submission.contacted = bool(sent)
    submission.contacted_at = now if sent else None
    submission.updated_at = now
    try:
        db.commit()
        db.refresh(submission)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"mark_contacted failed (id={submission_id}, sent={sent}): {e}")
        raise StorageError("mark_contacted", submission_id) from e

    logger.info(f"Submission {submission_id} contacted={submission.contacted}")
    return submission


def submission_stats(db: Session) -> Dict[str, int]:
    try:
        total = db.query(func.count(ContactSubmission.id)).scalar() or 0
        contacted = (
            db.query(func.count(ContactSubmission.id))
            .filter(ContactSubmission.contacted == True)  # noqa: E712
            .scalar()
            or 0
        )
    except SQLAlchemyError as e:
        logger.error(f"submission_stats failed: {e}")
        raise StorageError("submission_stats") from e
    return {"total": total, "contacted": contacted, "pending": total - contacted}
