"""
app/services/relay.py
Best-effort forwarding of conversion events to the ad / CRM sinks.

Events are normalized into ConversionEvent, then fanned out to every configured
sink concurrently. A sink failure is logged and dropped: no retry, no queue,
and nothing local depends on the outcome.
"""
import asyncio
import enum
import hashlib
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Union

import httpx

from app.config import settings
from app.errors import RelayDeliveryError
from app.services.channels import service_label
from app.services.validation import normalize_phone

logger = logging.getLogger(__name__)


class EventName(str, enum.Enum):
    LEAD_SUBMITTED = "lead-submitted"
    WHATSAPP_BUTTON_CLICKED = "whatsapp-button-clicked"
    MESSAGE_SENT = "message-sent"


# Raw names sent by the landing page (eventType) and by the CRM (event_name)
CLIENT_EVENT_TYPES = {
    "form_submit": EventName.LEAD_SUBMITTED,
    "lead": EventName.LEAD_SUBMITTED,
    "whatsapp_click": EventName.WHATSAPP_BUTTON_CLICKED,
    "whatsapp_button": EventName.WHATSAPP_BUTTON_CLICKED,
    "message_sent": EventName.MESSAGE_SENT,
}

CRM_EVENT_NAMES = {
    "lead": EventName.LEAD_SUBMITTED,
    "whatsapp_button": EventName.WHATSAPP_BUTTON_CLICKED,
    "whatsappmessagesent": EventName.MESSAGE_SENT,
    "sendwhatsappmessage": EventName.MESSAGE_SENT,
}


def hash_pii(value: str) -> str:
    """SHA-256 hex digest of the trimmed, lower-cased value."""
    return hashlib.sha256(value.strip().lower().encode("utf-8")).hexdigest()


def canonical_phone(value: Optional[str]) -> Optional[str]:
    value = _str(value)
    return normalize_phone(value, settings.DEFAULT_COUNTRY_CODE) if value else None


def matching_phone(value: Optional[str]) -> Optional[str]:
    """Country code and digits, no '+': the form Meta and Google match hashed phones on."""
    phone = canonical_phone(value)
    return phone.lstrip("+") if phone else None


@dataclass
class UserData:
    phone: Optional[str] = None
    email: Optional[str] = None
    first_name: Optional[str] = None
    fbc: Optional[str] = None
    fbp: Optional[str] = None
    gclid: Optional[str] = None
    client_ip: Optional[str] = None
    user_agent: Optional[str] = None


@dataclass
class CustomData:
    content_name: Optional[str] = None
    content_category: Optional[str] = None
    service: Optional[str] = None
    value: Optional[float] = None
    currency: Optional[str] = None


@dataclass
class ConversionEvent:
    event_name: EventName
    event_time: int
    action_source: str = "website"
    event_source_url: Optional[str] = None
    user: UserData = field(default_factory=UserData)
    custom: CustomData = field(default_factory=CustomData)
    # Set when the event comes from a stored submission
    submission_id: Optional[str] = None
    message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Plain JSON shape, PII untouched."""
        return {
            "event_name": self.event_name.value,
            "event_time": self.event_time,
            "action_source": self.action_source,
            "event_source_url": self.event_source_url,
            "user_data": {k: v for k, v in vars(self.user).items() if v},
            "custom_data": {k: v for k, v in vars(self.custom).items() if v is not None},
            "submission_id": self.submission_id,
            "message": self.message,
        }


@dataclass
class RelayResult:
    delivered: bool
    raw_response: Dict[str, Any] = field(default_factory=dict)
    failures: Dict[str, str] = field(default_factory=dict)

    @property
    def dispatched(self) -> bool:
        return bool(self.raw_response or self.failures)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "delivered": self.delivered,
            "responses": self.raw_response,
            "failures": self.failures,
        }


# ─── Normalization ───────────────────────────────────────────────────────────

def _str(value: Any) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValueError(f"invalid value: {value!r}")


def normalize_client_event(body: Any, client_ip: Optional[str] = None,
                           user_agent: Optional[str] = None) -> ConversionEvent:
    """Telemetry posted by the landing page: {eventType, url, userAgent, fbc, fbp, formData}."""
    if not isinstance(body, dict):
        raise ValueError("event body must be an object")

    # The WhatsApp button posts bare {userAgent, url} telemetry with no eventType
    event_type = _str(body.get("eventType")) or "whatsapp_button"
    if event_type.lower() not in CLIENT_EVENT_TYPES:
        raise ValueError(f"unknown eventType: {event_type!r}")
    event_name = CLIENT_EVENT_TYPES[event_type.lower()]

    form = body.get("formData") or {}
    if not isinstance(form, dict):
        raise ValueError("formData must be an object")

    user = UserData(
        phone=canonical_phone(form.get("phoneNumber")),
        email=_str(form.get("email")),
        first_name=_str(form.get("name")),
        fbc=_str(body.get("fbc")),
        fbp=_str(body.get("fbp")),
        gclid=_str(body.get("gclid")),
        client_ip=_str(body.get("ip")) or client_ip,
        user_agent=_str(body.get("userAgent")) or user_agent,
    )

    custom = CustomData(value=_float(body.get("value")), currency=_str(body.get("currency")))
    if event_name == EventName.LEAD_SUBMITTED:
        service = _str(form.get("selectedService"))
        custom.content_name = "Dental Service Inquiry"
        custom.content_category = "dental_services"
        custom.service = service_label(service) if service else None

    return ConversionEvent(
        event_name=event_name,
        event_time=int(time.time()),
        event_source_url=_str(body.get("url")),
        user=user,
        custom=custom,
    )


def normalize_crm_events(body: Any) -> List[ConversionEvent]:
    """CRM webhook payload: {data: [{event_name, event_time, user_data, custom_data}]}."""
    if not isinstance(body, dict) or not isinstance(body.get("data"), list) or not body["data"]:
        raise ValueError("expected a non-empty 'data' array")

    events = []
    for raw in body["data"]:
        if not isinstance(raw, dict):
            raise ValueError("each event must be an object")
        name = (_str(raw.get("event_name")) or "").lower()
        try:
            event_time = int(raw.get("event_time") or time.time())
        except (TypeError, ValueError):
            raise ValueError(f"invalid event_time: {raw.get('event_time')!r}")

        user_data = raw.get("user_data") or {}
        custom_data = raw.get("custom_data") or {}
        if not isinstance(user_data, dict) or not isinstance(custom_data, dict):
            raise ValueError("user_data and custom_data must be objects")

        events.append(ConversionEvent(
            event_name=CRM_EVENT_NAMES.get(name, EventName.MESSAGE_SENT),
            event_time=event_time,
            user=UserData(
                phone=canonical_phone(user_data.get("phone")),
                email=_str(user_data.get("email")),
                fbc=_str(user_data.get("fbc")),
                fbp=_str(user_data.get("fbp")),
                gclid=_str(user_data.get("gclid")),
            ),
            custom=CustomData(
                content_name=_str(custom_data.get("content_name")),
                value=_float(custom_data.get("value")),
                currency=_str(custom_data.get("currency")),
            ),
        ))
    return events


def event_from_submission(submission, message: Optional[str] = None) -> ConversionEvent:
    """Lead event for a stored submission, with the channel message that goes with it."""
    return ConversionEvent(
        event_name=EventName.LEAD_SUBMITTED,
        event_time=int(time.time()),
        user=UserData(phone=submission.phone_number, first_name=submission.name),
        custom=CustomData(
            content_name="Dental Service Inquiry",
            content_category="dental_services",
            service=service_label(submission.selected_service),
        ),
        submission_id=submission.id,
        message=message,
    )


# ─── Relay ───────────────────────────────────────────────────────────────────

class NotificationRelay:
    def __init__(self, sinks: Sequence, timeout: float = 10.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.sinks = list(sinks)
        self.timeout = timeout
        self.transport = transport

    @classmethod
    def from_settings(cls, cfg=settings, transport=None) -> "NotificationRelay":
        from app.services.sinks import configured_sinks
        return cls(configured_sinks(cfg), timeout=cfg.RELAY_TIMEOUT_SECONDS, transport=transport)

    async def forward(self, events: Union[ConversionEvent, Sequence[ConversionEvent]]) -> RelayResult:
        if isinstance(events, ConversionEvent):
            events = [events]

        batches = []
        for sink in self.sinks:
            accepted = [e for e in events if sink.accepts(e)]
            if accepted:
                batches.append((sink, accepted))

        result = RelayResult(delivered=False)
        if not batches:
            logger.warning(f"Relay: no sink accepted {len(events)} event(s), nothing dispatched")
            return result

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            outcomes = await asyncio.gather(
                *(sink.send(client, batch) for sink, batch in batches),
                return_exceptions=True,
            )

        for (sink, batch), outcome in zip(batches, outcomes):
            if isinstance(outcome, RelayDeliveryError):
                logger.warning(
                    f"Relay {sink.name} failed ({len(batch)} event(s)): "
                    f"{outcome.reason} status={outcome.status_code} body={outcome.body}"
                )
                result.failures[sink.name] = outcome.reason
            elif isinstance(outcome, Exception):
                logger.error(f"Relay {sink.name} crashed: {outcome!r}")
                result.failures[sink.name] = repr(outcome)
            else:
                logger.info(f"Relay {sink.name}: {len(batch)} event(s) delivered")
                result.raw_response[sink.name] = outcome
                result.delivered = True
        return result

    async def notify_submission(self, submission, message: Optional[str] = None) -> RelayResult:
        return await self.forward(event_from_submission(submission, message))
