"""
app/services/bridge_service.py

Purpose: WhatsApp Web bridge sending

- Posts replies to a WhatsApp Web automation sidecar
- Tags each message with the bot's session name
"""

import httpx
from typing import Optional
from app.core.config import Settings, settings as default_settings
from app.core.logging import get_logger

logger = get_logger(__name__)


class BridgeService:
    """Sends WhatsApp messages through the bridge's HTTP send endpoint"""

    def __init__(
        self,
        send_url: str,
        session_name: str,
        *,
        secret: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.send_url = send_url
        self.session_name = session_name
        self._headers = {"X-Webhook-Secret": secret} if secret else {}
        self._timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, current: Optional[Settings] = None) -> "BridgeService":
        current = current or default_settings
        return cls(
            current.BRIDGE_SEND_URL or "",
            current.SESSION_NAME,
            secret=current.WEBHOOK_SECRET,
            timeout=current.BACKEND_TIMEOUT_SECONDS,
        )

    async def send_text(self, recipient_id: str, body: str) -> bool:
        """
        Sends a text message to a chat id (e.g. 15550001111@c.us).

        Returns:
            True if the bridge accepted the message
        """
        payload = {"session": self.session_name, "to": recipient_id, "body": body}

        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(self.send_url, json=payload, headers=self._headers)
        except httpx.HTTPError as e:
            logger.error(f"Error sending bridge message to {recipient_id}: {e}")
            return False

        if response.is_success:
            logger.info(f"📤 Message sent via bridge session {self.session_name}")
            return True

        logger.error(f"❌ Bridge send error: {response.status_code} - {response.text}")
        return False
