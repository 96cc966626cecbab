"""
app/services/validation.py
Field rules for the public contact form.

Every rule runs on every call, so the form can show all of its errors at once.
Unknown service codes are accepted: the label lookup falls back to the raw
code (see app.services.channels.service_label).
"""
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

# Kuwait numbers: +96512345678, 96512345678, 012345678, 12345678
PHONE_RE = re.compile(r"^(\+965|965|0)?[1-9][0-9]{7}$")
PHONE_STRIP_RE = re.compile(r"[\s\-\(\)]")

MESSAGES = {
    ("name", "required"): "الاسم مطلوب",
    ("phoneNumber", "required"): "رقم الهاتف مطلوب",
    ("phoneNumber", "format"): "رقم الهاتف غير صحيح (مثال: 99123456 أو 96599123456)",
    ("selectedService", "required"): "يرجى اختيار الخدمة المطلوبة",
}


@dataclass
class ValidationResult:
    field_errors: Dict[str, str] = field(default_factory=dict)
    codes: Dict[str, str] = field(default_factory=dict)

    @property
    def valid(self) -> bool:
        return not self.field_errors

    def add(self, name: str, code: str):
        self.codes[name] = code
        self.field_errors[name] = MESSAGES[(name, code)]


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def clean_phone(raw: Optional[str]) -> str:
    """Drop whitespace, hyphens and parentheses."""
    return PHONE_STRIP_RE.sub("", _text(raw))


def normalize_phone(raw: str, country_code: str = "965") -> str:
    """Canonical +<cc><8 digits> form of an already valid phone number."""
    phone = clean_phone(raw)
    if phone.startswith("+"):
        return phone
    if phone.startswith(country_code) and len(phone) == len(country_code) + 8:
        return "+" + phone
    if phone.startswith("0"):
        phone = phone[1:]
    return f"+{country_code}{phone}"


def validate(candidate: Mapping[str, Any]) -> ValidationResult:
    result = ValidationResult()

    if not _text(candidate.get("name")).strip():
        result.add("name", "required")

    phone = _text(candidate.get("phoneNumber"))
    if not phone.strip():
        result.add("phoneNumber", "required")
    elif not PHONE_RE.match(clean_phone(phone)):
        result.add("phoneNumber", "format")

    if not _text(candidate.get("selectedService")).strip():
        result.add("selectedService", "required")

    return result
