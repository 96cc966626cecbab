"""
app/routes/submissions.py
Public contact form + admin follow-up of submissions.
"""
from fastapi import APIRouter, BackgroundTasks, Depends, Request, status
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.orm import Session
from typing import List

from app.config import settings
from app.database import get_db
from app.dependencies import get_current_user, get_relay
from app.models import AdminUser
from app.schemas import (
    ContactedResponse, ContactedUpdate, SubmissionCreate, SubmissionCreated,
    SubmissionResponse, WhatsAppLinkResponse,
)
from app.services import channels
from app.services.relay import NotificationRelay, event_from_submission
from app.services.submissions import create_submission, get_submission, list_submissions, mark_contacted

router = APIRouter()
limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)


@router.post("", response_model=SubmissionCreated, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.SUBMISSION_RATE_LIMIT)
def submit_contact_form(
    request: Request,
    data: SubmissionCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    relay: NotificationRelay = Depends(get_relay),
):
    submission = create_submission(db, data.model_dump(by_alias=True))
    message = channels.booking_message(submission)

    # Best effort: the response never waits on the ad / CRM sinks
    if settings.RELAY_SUBMISSIONS:
        background_tasks.add_task(relay.forward, event_from_submission(submission, message))

    return SubmissionCreated(
        id=submission.id,
        message="تم إرسال النموذج بنجاح",
        whatsappUrl=channels.booking_link(submission),
    )


@router.get("", response_model=List[SubmissionResponse])
def get_submissions(
    db: Session = Depends(get_db),
    _: AdminUser = Depends(get_current_user),
):
    return list_submissions(db)


@router.patch("/{submission_id}/contacted", response_model=ContactedResponse)
def update_contacted(
    submission_id: str,
    data: ContactedUpdate,
    db: Session = Depends(get_db),
    _: AdminUser = Depends(get_current_user),
):
    submission = mark_contacted(db, submission_id, data.sent)
    return ContactedResponse(submission=SubmissionResponse.model_validate(submission))


@router.post("/{submission_id}/whatsapp", response_model=WhatsAppLinkResponse)
def open_whatsapp_reply(
    submission_id: str,
    db: Session = Depends(get_db),
    _: AdminUser = Depends(get_current_user),
):
    """Reply link for the patient; opening it marks the submission as contacted."""
    url = channels.reply_link(get_submission(db, submission_id))
    submission = mark_contacted(db, submission_id, True)
    return WhatsAppLinkResponse(url=url, submission=SubmissionResponse.model_validate(submission))
