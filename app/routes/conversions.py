"""
app/routes/conversions.py
Relay endpoints: landing page telemetry and CRM webhook → ad / CRM sinks.
Nothing here is stored; downstream failures are logged, never returned as errors.
"""
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from app.dependencies import get_relay
from app.services.relay import NotificationRelay, normalize_client_event, normalize_crm_events

logger = logging.getLogger(__name__)

router = APIRouter()


def _client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.headers.get("x-real-ip") or (request.client.host if request.client else "127.0.0.1")


def _error(message: str, status_code: int = 500) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message, "timestamp": datetime.now(timezone.utc).isoformat()},
    )


async def _relay(events, relay: NotificationRelay):
    result = await relay.forward(events)
    if not result.dispatched:
        return _error("no conversion sink configured")
    return {
        "success": True,
        "message": f"Processed {len(events)} event(s)",
        "result": result.to_dict(),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.post("/conversion-events")
async def conversion_events(request: Request, relay: NotificationRelay = Depends(get_relay)):
    try:
        body = await request.json()
        if isinstance(body, dict) and "data" in body:
            events = normalize_crm_events(body)
        else:
            events = [normalize_client_event(
                body,
                client_ip=_client_ip(request),
                user_agent=request.headers.get("user-agent"),
            )]
    except ValueError as e:
        logger.warning(f"Malformed conversion event: {e}")
        return _error(f"malformed event: {e}")

    return await _relay(events, relay)


@router.get("/crm-webhook")
async def crm_webhook_info():
    return {
        "message": "CRM Webhook Endpoint",
        "description": "Accepts POST requests from the CRM and forwards conversion data to the configured ad platforms",
        "methods": ["POST"],
        "expectedPayload": {
            "data": [{
                "event_name": "WhatsAppMessageSent",
                "event_time": "unix_timestamp",
                "action_source": "website",
                "user_data": {
                    "phone": "user_phone",
                    "email": "user_email",
                    "fbc": "facebook_click_id",
                    "fbp": "facebook_browser_id",
                },
                "custom_data": {
                    "content_name": "WhatsApp Lead",
                    "value": 1.0,
                    "currency": "KWD",
                },
            }]
        },
        "status": "active",
    }


@router.post("/crm-webhook")
async def crm_webhook(request: Request, relay: NotificationRelay = Depends(get_relay)):
    try:
        events = normalize_crm_events(await request.json())
    except ValueError as e:
        logger.warning(f"Malformed CRM webhook payload: {e}")
        return _error(f"malformed payload: {e}")

    logger.info(f"CRM webhook: {len(events)} event(s) received")
    return await _relay(events, relay)
