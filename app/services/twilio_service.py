"""
app/services/twilio_service.py

Purpose: Twilio WhatsApp message sending

- Sends WhatsApp text replies via the Twilio Messages API
- Adds the whatsapp: prefix Twilio expects
"""

import httpx
from typing import Optional
from app.core.config import Settings, settings as default_settings
from app.core.logging import get_logger

logger = get_logger(__name__)

TWILIO_API_BASE = "https://api.twilio.com/2010-04-01"


class TwilioService:
    """Sends WhatsApp messages via Twilio"""

    def __init__(
        self,
        account_sid: Optional[str],
        auth_token: Optional[str],
        whatsapp_number: str,
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.whatsapp_number = whatsapp_number  # whatsapp:+14155238886
        self.base_url = f"{TWILIO_API_BASE}/Accounts/{account_sid}"
        self._timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, current: Optional[Settings] = None) -> "TwilioService":
        current = current or default_settings
        return cls(
            current.TWILIO_ACCOUNT_SID,
            current.TWILIO_AUTH_TOKEN,
            current.TWILIO_WHATSAPP_NUMBER,
            timeout=current.BACKEND_TIMEOUT_SECONDS,
        )

    async def send_text(self, recipient_id: str, body: str) -> bool:
        """
        Sends a WhatsApp text message via Twilio.

        Args:
            recipient_id: Recipient phone (+919876543210)
            body: Message text

        Returns:
            True if Twilio accepted the message
        """
        if not self.is_configured():
            logger.error("Twilio credentials are not configured, reply dropped")
            return False

        to_phone = recipient_id
        if not to_phone.startswith("whatsapp:"):
            to_phone = f"whatsapp:{to_phone}"

        data = {
            "From": self.whatsapp_number,
            "To": to_phone,
            "Body": body
        }

        logger.info(f"📤 Sending Twilio message to {to_phone}")

        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(
                    f"{self.base_url}/Messages.json",
                    data=data,
                    auth=(self.account_sid or "", self.auth_token or ""),
                )
        except httpx.TimeoutException:
            logger.error("Twilio API timeout")
            return False
        except httpx.HTTPError as e:
            logger.error(f"Error sending Twilio message: {e}")
            return False

        if response.status_code in (200, 201):
            logger.info(f"✅ Message sent: SID={response.json().get('sid')}")
            return True

        logger.error(f"❌ Twilio API error: {response.status_code} - {response.text}")
        return False

    def is_configured(self) -> bool:
        """Check if Twilio is properly configured"""
        return bool(
            self.account_sid
            and self.auth_token
            and self.whatsapp_number
            and self.account_sid != "your_twilio_sid"
        )
