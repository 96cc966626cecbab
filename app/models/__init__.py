from app.models.submission import ContactSubmission, utcnow
from app.models.user import AdminUser, AdminRole

__all__ = ["ContactSubmission", "AdminUser", "AdminRole", "utcnow"]
