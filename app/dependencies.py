from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from app.database import get_db
from app.errors import Unauthorized
from app.models import AdminUser
from app.services.relay import NotificationRelay
from app.utils.auth import decode_access_token

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)


def get_current_user(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)) -> AdminUser:
    if not token:
        raise Unauthorized("missing bearer token")
    email = decode_access_token(token)
    if not email:
        raise Unauthorized("invalid or expired token")
    user = db.query(AdminUser).filter(AdminUser.email == email).first()
    if user is None or not user.is_active:
        raise Unauthorized("unknown or inactive admin")
    return user


def get_relay() -> NotificationRelay:
    return NotificationRelay.from_settings()
