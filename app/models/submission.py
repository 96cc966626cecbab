from sqlalchemy import Column, String, DateTime, Text, Boolean
from datetime import datetime, timezone
from app.database import Base


def utcnow():
    # UTC naive, same convention for every timestamp column
    return datetime.now(timezone.utc).replace(tzinfo=None)


class ContactSubmission(Base):
    __tablename__ = "contact_submissions"

    id               = Column(String, primary_key=True, index=True)
    name             = Column(String, nullable=False)
    phone_number     = Column(String, nullable=False, index=True)   # +965XXXXXXXX
    selected_service = Column(String, nullable=False)               # teeth-whitening, consultation…
    message          = Column(Text, nullable=True)

    # Follow-up over WhatsApp: contacted_at is set iff contacted
    contacted        = Column(Boolean, nullable=False, default=False)
    contacted_at     = Column(DateTime, nullable=True)

    created_at       = Column(DateTime, nullable=False, default=utcnow, index=True)
    updated_at       = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<ContactSubmission {self.id} contacted={self.contacted}>"
