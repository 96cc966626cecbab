from pydantic import BaseModel, ConfigDict, EmailStr, computed_field
from pydantic.alias_generators import to_camel
from typing import Optional
from datetime import datetime

from app.services.channels import service_label


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# Auth Schemas
class AdminLogin(BaseModel):
    email: EmailStr
    password: str

class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"

class AdminResponse(CamelModel):
    id: str
    email: str
    name: str
    role: str
    last_login: Optional[datetime] = None


# Submission Schemas
class SubmissionCreate(CamelModel):
    # Everything optional: the field rules report missing values as 400 fieldErrors
    name: Optional[str] = None
    phone_number: Optional[str] = None
    selected_service: Optional[str] = None
    message: Optional[str] = None

class SubmissionCreated(BaseModel):
    success: bool = True
    id: str
    message: str
    whatsappUrl: str

class SubmissionResponse(CamelModel):
    id: str
    name: str
    phone_number: str
    selected_service: str
    message: Optional[str] = None
    contacted: bool
    contacted_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    @computed_field(alias="serviceLabel")
    @property
    def service_label(self) -> str:
        return service_label(self.selected_service)

class ContactedUpdate(BaseModel):
    sent: bool

class ContactedResponse(BaseModel):
    success: bool = True
    submission: SubmissionResponse

class WhatsAppLinkResponse(BaseModel):
    url: str
    submission: SubmissionResponse

class SubmissionStats(BaseModel):
    total: int
    contacted: int
    pending: int
