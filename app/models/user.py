from sqlalchemy import Column, String, DateTime, Boolean, Enum
import enum
from app.database import Base
from app.models.submission import utcnow

class AdminRole(str, enum.Enum):
    ADMIN = "ADMIN"
    STAFF = "STAFF"

class AdminUser(Base):
    __tablename__ = "admin_users"

    id = Column(String, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    name = Column(String, nullable=False)
    role = Column(Enum(AdminRole), default=AdminRole.ADMIN, nullable=False)

    # Metadata
    is_active = Column(Boolean, default=True, nullable=False)
    last_login = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
