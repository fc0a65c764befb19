"""
app/api/webhook.py

Purpose: Unified WhatsApp webhook endpoint

- Receives incoming messages from Twilio or the WhatsApp Web bridge
- Auto-detects platform based on request format
- Parses message payloads and normalizes them
- Passes control to the message dispatcher
- Returns platform-compatible responses
"""

import hmac

from fastapi import APIRouter, BackgroundTasks, Depends, Form, HTTPException, Request
from fastapi.responses import Response
from pydantic import ValidationError
from typing import Optional

from app.core.config import settings
from app.core.exceptions import AuthenticationError
from app.core.logging import get_logger
from app.flow.dispatcher import MessageDispatcher
from app.schemas.response import WebhookAck
from app.schemas.webhook import parse_bridge_message, parse_twilio_message

logger = get_logger(__name__)
router = APIRouter()

EMPTY_TWIML = "<?xml version=\"1.0\" encoding=\"UTF-8\"?><Response></Response>"


def get_dispatcher(request: Request) -> MessageDispatcher:
    """Dispatcher built during application startup."""
    dispatcher = getattr(request.app.state, "dispatcher", None)
    if dispatcher is None:
        raise HTTPException(status_code=503, detail="Gateway is not ready")
    return dispatcher


def verify_bridge_secret(request: Request):
    if not settings.WEBHOOK_SECRET:
        return
    provided = request.headers.get("X-Webhook-Secret", "")
    if not hmac.compare_digest(provided, settings.WEBHOOK_SECRET):
        logger.warning("Rejected bridge webhook with a bad secret")
        raise AuthenticationError("Invalid webhook secret")


@router.post("/webhook")
async def webhook_handler(
    request: Request,
    background_tasks: BackgroundTasks,
    dispatcher: MessageDispatcher = Depends(get_dispatcher),
    # Twilio sends form data
    From: Optional[str] = Form(None),
    Body: Optional[str] = Form(None),
    ProfileName: Optional[str] = Form(None),
    MessageSid: Optional[str] = Form(None),
):
    """
    Unified webhook endpoint for WhatsApp messages

    Supports:
    - Twilio WhatsApp (form data)
    - WhatsApp Web bridge (JSON payload)
    """
    if From is not None:
        logger.info(f"📱 Twilio webhook received from {From}")
        message = parse_twilio_message(
            from_number=From,
            body=Body,
            profile_name=ProfileName,
            message_sid=MessageSid
        )

        # Twilio times out after 15s; the reply is sent through the Messages API
        background_tasks.add_task(dispatcher.dispatch, message)
        return Response(content=EMPTY_TWIML, media_type="application/xml")

    verify_bridge_secret(request)

    try:
        payload = await request.json()
        message = parse_bridge_message(payload)
    except (ValueError, ValidationError) as e:
        logger.error(f"Failed to parse JSON payload: {e}")
        raise HTTPException(status_code=400, detail="Invalid webhook payload")

    logger.info(f"📱 Bridge webhook received from {message.sender_id}")
    await dispatcher.dispatch(message)
    return WebhookAck()


@router.get("/webhook")
async def webhook_verification():
    """
    Webhook verification endpoint (for platforms that require GET verification)
    """
    return {"status": "ok", "message": "Webhook endpoint is active"}
