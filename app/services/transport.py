"""
app/services/transport.py

Purpose: Outbound messaging seam

- Transport protocol used by the dispatcher
- Picks Twilio or the bridge from settings
"""

from typing import Optional, Protocol

from app.core.config import Settings, settings as default_settings
from app.services.bridge_service import BridgeService
from app.services.twilio_service import TwilioService


class Transport(Protocol):
    async def send_text(self, recipient_id: str, body: str) -> bool:
        ...


def get_transport(current: Optional[Settings] = None) -> Transport:
    current = current or default_settings
    if current.TRANSPORT == "bridge":
        return BridgeService.from_settings(current)
    return TwilioService.from_settings(current)
