import asyncio
import json
from types import SimpleNamespace

import httpx
import pytest

from app.config import Settings
from app.services.relay import (
    ConversionEvent, EventName, NotificationRelay, UserData, event_from_submission,
    hash_pii, normalize_client_event, normalize_crm_events,
)
from app.services.sinks import (
    CrmWebhookSink, EmailNotificationSink, GoogleAdsSink, MetaConversionsSink, configured_sinks,
)

SUBMISSION = SimpleNamespace(
    id="sub-1",
    name="Ahmed",
    phone_number="+96599123456",
    selected_service="dental-implants",
    message=None,
)


def _run(coro):
    return asyncio.run(coro)


# ─── Hashing ─────────────────────────────────────────────────────────────────

def test_hash_ignores_case_and_surrounding_whitespace():
    assert hash_pii("  Ahmed@Example.COM ") == hash_pii("ahmed@example.com")
    assert hash_pii("+96599123456") == hash_pii(" +96599123456\n")


def test_hash_never_equals_raw_value():
    for raw in ["99123456", "a", "ahmed@example.com"]:
        digest = hash_pii(raw)
        assert digest != raw
        assert len(digest) == 64


# ─── Normalization ───────────────────────────────────────────────────────────

def test_client_form_submit_becomes_lead():
    event = normalize_client_event(
        {
            "eventType": "form_submit",
            "url": "https://newrayan.com/",
            "userAgent": "Mozilla/5.0",
            "fbc": "fb.1.123.abc",
            "formData": {"name": "Ahmed", "phoneNumber": "9912 3456", "selectedService": "orthodontics"},
        },
        client_ip="203.0.113.7",
    )
    assert event.event_name == EventName.LEAD_SUBMITTED
    assert event.action_source == "website"
    assert event.user.phone == "+96599123456"
    assert event.user.client_ip == "203.0.113.7"
    assert event.user.fbc == "fb.1.123.abc"
    assert event.custom.service == "تقويم الأسنان"
    assert event.event_time > 0


def test_client_whatsapp_click():
    event = normalize_client_event({"eventType": "whatsapp_click"}, user_agent="UA")
    assert event.event_name == EventName.WHATSAPP_BUTTON_CLICKED
    assert event.user.user_agent == "UA"
    assert event.custom.content_name is None


def test_bare_button_telemetry_is_a_whatsapp_click():
    event = normalize_client_event(
        {"userAgent": "Mozilla/5.0", "url": "https://newrayan.com/", "ip": "198.51.100.4"},
        client_ip="10.0.0.1",
    )
    assert event.event_name == EventName.WHATSAPP_BUTTON_CLICKED
    assert event.event_source_url == "https://newrayan.com/"
    assert event.user.client_ip == "198.51.100.4"
    assert event.user.user_agent == "Mozilla/5.0"


@pytest.mark.parametrize("body", [
    None,
    [],
    {"eventType": "page_view"},
    {"eventType": "form_submit", "formData": "Ahmed"},
    {"eventType": "form_submit", "value": "lots"},
])
def test_malformed_client_events(body):
    with pytest.raises(ValueError):
        normalize_client_event(body)


def test_crm_events():
    events = normalize_crm_events({"data": [{
        "event_name": "WhatsAppMessageSent",
        "event_time": "1760000000",
        "action_source": "chat",
        "user_data": {"phone": "+96599123456", "email": "a@b.com", "fbc": "c", "fbp": "p"},
        "custom_data": {"content_name": "WhatsApp Lead", "value": 1.0, "currency": "KWD"},
    }]})
    [event] = events
    assert event.event_name == EventName.MESSAGE_SENT
    assert event.event_time == 1760000000
    assert event.action_source == "website"
    assert event.user.email == "a@b.com"
    assert event.custom.value == 1.0
    assert event.custom.currency == "KWD"


@pytest.mark.parametrize("body", [
    {},
    {"data": []},
    {"data": "x"},
    {"data": [{"event_name": "Lead", "event_time": "yesterday"}]},
    {"data": [{"event_name": "Lead", "user_data": "x"}]},
])
def test_malformed_crm_payloads(body):
    with pytest.raises(ValueError):
        normalize_crm_events(body)


# ─── Sinks ───────────────────────────────────────────────────────────────────

def _lead():
    return event_from_submission(SUBMISSION, "مرحباً")


def test_meta_payload_hashes_pii():
    sink = MetaConversionsSink("pixel", "token", api_version="v18.0", test_event_code="TEST1")
    payload = sink.payload([_lead()])

    assert sink.url() == "https://graph.facebook.com/v18.0/pixel/events"
    assert payload["access_token"] == "token"
    assert payload["test_event_code"] == "TEST1"
    data = payload["data"][0]
    assert data["event_name"] == "Lead"
    assert data["action_source"] == "website"
    assert data["user_data"]["ph"] == hash_pii("96599123456")
    assert data["user_data"]["fn"] == hash_pii("Ahmed")
    assert "Ahmed" not in json.dumps(payload, ensure_ascii=False)


@pytest.mark.parametrize("raw", ["99123456", "9912 3456", "099123456", "96599123456", "+965 9912-3456"])
def test_same_phone_hashes_the_same_from_every_source(raw):
    meta = MetaConversionsSink("pixel", "token")
    google = GoogleAdsSink("https://ads.example.test/upload", "customers/1/conversionActions/2")
    stored = event_from_submission(SUBMISSION)
    client = normalize_client_event({"eventType": "form_submit", "formData": {"phoneNumber": raw}})
    crm = normalize_crm_events({"data": [{"event_name": "Lead", "user_data": {"phone": raw}}]})[0]

    expected = hash_pii("96599123456")
    for event in (stored, client, crm):
        assert meta.event_data(event)["user_data"]["ph"] == expected
        assert google.conversion(event)["userIdentifiers"] == [{"hashedPhoneNumber": expected}]


def test_google_ads_payload():
    sink = GoogleAdsSink("https://ads.example.test/upload", "customers/1/conversionActions/2",
                         developer_token="dev", access_token="tok")
    event = ConversionEvent(
        event_name=EventName.LEAD_SUBMITTED,
        event_time=0,
        user=UserData(gclid="g-1", email="A@B.com"),
    )
    conversion = sink.payload([event])["conversions"][0]

    assert conversion["conversionDateTime"] == "1970-01-01 00:00:00+00:00"
    assert conversion["gclid"] == "g-1"
    assert conversion["userIdentifiers"] == [{"hashedEmail": hash_pii("a@b.com")}]
    assert sink.headers()["developer-token"] == "dev"
    assert not sink.accepts(ConversionEvent(event_name=EventName.MESSAGE_SENT, event_time=0))


def test_crm_payload_is_not_hashed():
    payload = CrmWebhookSink("https://crm.example.test").payload([_lead()])
    data = payload["data"][0]
    assert data["user_data"]["phone"] == "+96599123456"
    assert data["message"] == "مرحباً"
    assert data["submission_id"] == "sub-1"


def test_email_sink_only_takes_stored_leads():
    sink = EmailNotificationSink("key", "from@x.test", "clinic@x.test")
    assert sink.accepts(_lead())
    assert not sink.accepts(normalize_client_event({"eventType": "form_submit"}))
    assert "Ahmed" in sink.payload([_lead()])["text"]


def test_configured_sinks_follow_settings():
    cfg = Settings(SECRET_KEY="x", META_PIXEL_ID="1", META_ACCESS_TOKEN="t", CRM_WEBHOOK_URL="https://crm")
    assert [s.name for s in configured_sinks(cfg)] == ["meta", "crm"]
    assert configured_sinks(Settings(SECRET_KEY="x")) == []


# ─── Relay fan-out ───────────────────────────────────────────────────────────

def _relay(handler, *sinks):
    return NotificationRelay(list(sinks), timeout=1.0, transport=httpx.MockTransport(handler))


def test_forward_delivers_to_every_sink(recorder):
    relay = _relay(recorder, MetaConversionsSink("p", "t"), CrmWebhookSink("https://crm.example.test"))
    result = _run(relay.forward(_lead()))

    assert result.delivered
    assert set(result.raw_response) == {"meta", "crm"}
    assert result.failures == {}
    assert len(recorder.requests) == 2


def test_forward_tolerates_partial_failure(recorder):
    recorder.fail_hosts.add("graph.facebook.com")
    relay = _relay(recorder, MetaConversionsSink("p", "t"), CrmWebhookSink("https://crm.example.test"))
    result = _run(relay.forward(_lead()))

    assert result.delivered
    assert "meta" in result.failures
    assert "crm" in result.raw_response


def test_forward_never_raises_when_everything_is_down(recorder, caplog):
    recorder.unreachable = True
    relay = _relay(recorder, MetaConversionsSink("p", "t"))
    result = _run(relay.forward(_lead()))

    assert not result.delivered
    assert result.dispatched
    assert "meta" in result.failures
    assert any("Relay meta failed" in r.getMessage() for r in caplog.records)


def test_forward_without_sinks_dispatches_nothing():
    result = _run(NotificationRelay([]).forward(_lead()))
    assert not result.delivered
    assert not result.dispatched


def test_notify_submission_includes_channel_message(recorder):
    relay = _relay(recorder, CrmWebhookSink("https://crm.example.test"))
    _run(relay.notify_submission(SUBMISSION, "رسالة"))

    [request] = recorder.requests
    assert json.loads(request.content)["data"][0]["message"] == "رسالة"
