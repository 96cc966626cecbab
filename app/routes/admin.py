"""
app/routes/admin.py
Admin dashboard figures.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_current_user
from app.models import AdminUser
from app.schemas import SubmissionStats
from app.services.submissions import submission_stats

router = APIRouter()


@router.get("/stats", response_model=SubmissionStats)
def admin_stats(
    db: Session = Depends(get_db),
    _: AdminUser = Depends(get_current_user),
):
    return SubmissionStats(**submission_stats(db))
