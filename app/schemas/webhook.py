"""
app/schemas/webhook.py

Purpose: WhatsApp webhook payload schemas and parsers

- Validates incoming messages from Twilio and the WhatsApp Web bridge
- Normalizes different formats into InboundMessage
- Ensures predictable request handling
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, Literal
from datetime import datetime, timezone


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InboundMessage(BaseModel):
    """
    Normalized message format for internal processing.
    Works with both Twilio and the bridge.
    """
    sender_id: str = Field(..., min_length=1, description="Sender identity (phone number or chat id)")
    text: str = Field(default="", description="Message text content")
    is_group_message: bool = Field(default=False, description="True for group chat messages")
    message_id: Optional[str] = Field(default=None, description="Platform message identifier")
    name: Optional[str] = Field(default=None, description="Sender display name")
    timestamp: datetime = Field(default_factory=_utcnow)
    platform: Literal["twilio", "bridge"] = Field(..., description="Source platform")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "sender_id": "+15550001111",
                "text": "alice",
                "is_group_message": False,
                "platform": "bridge"
            }
        }
    )


class BridgePayload(BaseModel):
    """
    JSON body posted by the WhatsApp Web bridge for each inbound message.
    """
    sender_id: str = Field(..., min_length=1)
    text: Optional[str] = ""
    is_group_message: bool = False
    message_id: Optional[str] = None
    name: Optional[str] = None


def parse_twilio_message(
    from_number: str,
    body: Optional[str],
    profile_name: Optional[str] = None,
    message_sid: Optional[str] = None
) -> InboundMessage:
    """
    Parses Twilio WhatsApp webhook payload

    Twilio format (form data):
    - From: whatsapp:+919876543210
    - Body: message text
    - ProfileName: User's name
    - MessageSid: SM123...
    """
    sender_id = from_number.replace("whatsapp:", "")

    return InboundMessage(
        sender_id=sender_id,
        text=body or "",
        is_group_message=False,  # Twilio WhatsApp has no group chats
        message_id=message_sid,
        name=profile_name,
        platform="twilio"
    )


def parse_bridge_message(payload: dict) -> InboundMessage:
    """
    Parses a bridge webhook payload

    Bridge format (JSON):
    {
        "sender_id": "15550001111@c.us",
        "text": "alice",
        "is_group_message": false,
        "message_id": "true_15550001111@c.us_3EB0..."
    }
    """
    data = BridgePayload.model_validate(payload)

    return InboundMessage(
        sender_id=data.sender_id,
        text=data.text or "",
        is_group_message=data.is_group_message,
        message_id=data.message_id,
        name=data.name,
        platform="bridge"
    )
