"""
app/services/sinks.py
Destinations for the notification relay.

Each sink knows its endpoint, whether PII must be hashed before it leaves the
server, and how to shape its payload. A sink is only built when its settings
are filled in.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx

from app.errors import RelayDeliveryError
from app.services.relay import ConversionEvent, EventName, hash_pii, matching_phone


class RelaySink:
    name = "sink"
    hash_pii = True

    def accepts(self, event: ConversionEvent) -> bool:
        return True

    def url(self) -> str:
        raise NotImplementedError

    def headers(self) -> Dict[str, str]:
        return {"Content-Type": "application/json"}

    def payload(self, events: List[ConversionEvent]) -> Dict[str, Any]:
        raise NotImplementedError

    def pii(self, value: Optional[str]) -> Optional[str]:
        if not value:
            return None
        return hash_pii(value) if self.hash_pii else value

    async def send(self, client: httpx.AsyncClient, events: List[ConversionEvent]):
        try:
            resp = await client.post(self.url(), json=self.payload(events), headers=self.headers())
        except httpx.HTTPError as e:
            raise RelayDeliveryError(self.name, f"transport error: {e!r}") from e

        try:
            body = resp.json()
        except ValueError:
            body = resp.text

        if not resp.is_success:
            raise RelayDeliveryError(self.name, f"HTTP {resp.status_code}", resp.status_code, body)
        return body


def _compact(data: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in data.items() if v not in (None, "")}


# ─── Meta Conversions API ────────────────────────────────────────────────────

class MetaConversionsSink(RelaySink):
    name = "meta"
    hash_pii = True

    EVENT_NAMES = {
        EventName.LEAD_SUBMITTED: "Lead",
        EventName.WHATSAPP_BUTTON_CLICKED: "whatsapp_button",
        EventName.MESSAGE_SENT: "WhatsAppMessageSent",
    }

    def __init__(self, pixel_id: str, access_token: str, api_version: str = "v18.0",
                 test_event_code: str = ""):
        self.pixel_id = pixel_id
        self.access_token = access_token
        self.api_version = api_version
        self.test_event_code = test_event_code

    def url(self) -> str:
        return f"https://graph.facebook.com/{self.api_version}/{self.pixel_id}/events"

    def event_data(self, event: ConversionEvent) -> Dict[str, Any]:
        user = event.user
        return _compact({
            "event_name": self.EVENT_NAMES[event.event_name],
            "event_time": event.event_time,
            "action_source": event.action_source,
            "event_source_url": event.event_source_url,
            "user_data": _compact({
                "ph": self.pii(matching_phone(user.phone)),
                "em": self.pii(user.email),
                "fn": self.pii(user.first_name),
                "fbc": user.fbc,
                "fbp": user.fbp,
                "client_ip_address": user.client_ip,
                "client_user_agent": user.user_agent,
            }),
            "custom_data": _compact(vars(event.custom)) or None,
        })

    def payload(self, events: List[ConversionEvent]) -> Dict[str, Any]:
        body = {
            "data": [self.event_data(e) for e in events],
            "access_token": self.access_token,
        }
        if self.test_event_code:
            body["test_event_code"] = self.test_event_code
        return body


# ─── Google Ads ──────────────────────────────────────────────────────────────

class GoogleAdsSink(RelaySink):
    name = "google_ads"
    hash_pii = True

    def __init__(self, upload_url: str, conversion_action: str,
                 developer_token: str = "", access_token: str = ""):
        self.upload_url = upload_url
        self.conversion_action = conversion_action
        self.developer_token = developer_token
        self.access_token = access_token

    def accepts(self, event: ConversionEvent) -> bool:
        # Google needs a click id or at least one hashed identifier
        user = event.user
        return bool(user.gclid or user.phone or user.email)

    def url(self) -> str:
        return self.upload_url

    def headers(self) -> Dict[str, str]:
        headers = super().headers()
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        if self.developer_token:
            headers["developer-token"] = self.developer_token
        return headers

    def conversion(self, event: ConversionEvent) -> Dict[str, Any]:
        user = event.user
        identifiers = []
        if user.phone:
            identifiers.append({"hashedPhoneNumber": self.pii(matching_phone(user.phone))})
        if user.email:
            identifiers.append({"hashedEmail": self.pii(user.email)})
        when = datetime.fromtimestamp(event.event_time, tz=timezone.utc)
        return _compact({
            "conversionAction": self.conversion_action,
            "conversionDateTime": when.strftime("%Y-%m-%d %H:%M:%S+00:00"),
            "gclid": user.gclid,
            "userIdentifiers": identifiers or None,
            "conversionValue": event.custom.value,
            "currencyCode": event.custom.currency,
        })

    def payload(self, events: List[ConversionEvent]) -> Dict[str, Any]:
        return {
            "conversions": [self.conversion(e) for e in events],
            "partialFailure": True,
        }


# ─── CRM webhook ─────────────────────────────────────────────────────────────

class CrmWebhookSink(RelaySink):
    """Clinic-owned CRM: receives the lead as-is."""
    name = "crm"
    hash_pii = False

    def __init__(self, webhook_url: str):
        self.webhook_url = webhook_url

    def url(self) -> str:
        return self.webhook_url

    def payload(self, events: List[ConversionEvent]) -> Dict[str, Any]:
        return {"data": [e.to_dict() for e in events]}


# ─── Email notification (Resend) ─────────────────────────────────────────────

class EmailNotificationSink(RelaySink):
    name = "email"
    hash_pii = False

    def __init__(self, api_key: str, sender: str, recipient: str):
        self.api_key = api_key
        self.sender = sender
        self.recipient = recipient

    def accepts(self, event: ConversionEvent) -> bool:
        return event.event_name == EventName.LEAD_SUBMITTED and event.submission_id is not None

    def url(self) -> str:
        return "https://api.resend.com/emails"

    def headers(self) -> Dict[str, str]:
        headers = super().headers()
        headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def payload(self, events: List[ConversionEvent]) -> Dict[str, Any]:
        blocks = []
        for e in events:
            lines = [
                f"الاسم: {e.user.first_name or '-'}",
                f"رقم الهاتف: {e.user.phone or '-'}",
                f"الخدمة المطلوبة: {e.custom.service or '-'}",
            ]
            if e.message:
                lines.append(f"الرسالة: {e.message}")
            blocks.append("\n".join(lines))
        return {
            "from": self.sender,
            "to": [self.recipient],
            "subject": f"طلب حجز جديد ({len(events)})",
            "text": "\n\n".join(blocks),
        }


def configured_sinks(cfg) -> List[RelaySink]:
    sinks: List[RelaySink] = []
    if cfg.META_PIXEL_ID and cfg.META_ACCESS_TOKEN:
        sinks.append(MetaConversionsSink(
            cfg.META_PIXEL_ID, cfg.META_ACCESS_TOKEN,
            api_version=cfg.META_API_VERSION,
            test_event_code=cfg.META_TEST_EVENT_CODE,
        ))
    if cfg.GOOGLE_ADS_CONVERSION_URL and cfg.GOOGLE_ADS_CONVERSION_ACTION:
        sinks.append(GoogleAdsSink(
            cfg.GOOGLE_ADS_CONVERSION_URL, cfg.GOOGLE_ADS_CONVERSION_ACTION,
            developer_token=cfg.GOOGLE_ADS_DEVELOPER_TOKEN,
            access_token=cfg.GOOGLE_ADS_ACCESS_TOKEN,
        ))
    if cfg.CRM_WEBHOOK_URL:
        sinks.append(CrmWebhookSink(cfg.CRM_WEBHOOK_URL))
    if cfg.RESEND_API_KEY and cfg.NOTIFY_EMAIL_TO:
        sinks.append(EmailNotificationSink(cfg.RESEND_API_KEY, cfg.NOTIFY_EMAIL_FROM, cfg.NOTIFY_EMAIL_TO))
    return sinks
