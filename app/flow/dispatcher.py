"""
app/flow/dispatcher.py

Purpose: Central message dispatcher

- Receives normalized messages from the webhook
- Ignores group messages
- Serializes handling per phone
- Routes to the command router or the verification flow
- Sends exactly one reply through the transport
"""

from typing import Optional

from app.core.logging import get_logger, LogContext
from app.flow.commands import CommandRouter
from app.flow.states import VerificationState, get_state_metadata
from app.flow.verification import VerificationStateMachine
from app.schemas.webhook import InboundMessage
from app.services.session_store import SessionStore
from app.services.transport import Transport
from utils.constants import GENERIC_ERROR_MESSAGE
from utils.validation_utils import is_verification_code, sanitize_message

logger = get_logger(__name__)


class MessageDispatcher:
    """
    Entry point for every inbound message.

    Messages from one phone are handled one at a time, in arrival order.
    Messages from different phones run concurrently.
    """

    def __init__(
        self,
        store: SessionStore,
        machine: VerificationStateMachine,
        router: CommandRouter,
        transport: Transport,
    ):
        self.store = store
        self.machine = machine
        self.router = router
        self.transport = transport

    async def dispatch(self, message: InboundMessage) -> Optional[str]:
        """
        Handles one inbound message.

        Args:
            message: Normalized inbound message

        Returns:
            The reply that was sent, or None when nothing was sent
        """
        if message.is_group_message:
            logger.debug(f"Ignoring group message from {message.sender_id}")
            return None

        phone = message.sender_id
        text = sanitize_message(message.text)

        with LogContext(phone=phone):
            logger.info(f"📨 Dispatching message via {message.platform}")

            async with self.store.locked(phone):
                try:
                    reply = await self.route(phone, text)
                except Exception as e:
                    # Last resort: keep one bad message from breaking later ones
                    logger.error(f"❌ Dispatcher error: {e}", exc_info=True)
                    reply = GENERIC_ERROR_MESSAGE

                if reply:
                    await self.send_response(phone, reply)

        return reply

    async def route(self, phone: str, text: str) -> Optional[str]:
        """
        Picks the transition for a message based on the phone's state.

        Returns:
            Reply text, or None for an empty message
        """
        state = self.store.get_state(phone)
        metadata = get_state_metadata(state)
        logger.info(f"🚦 Routing: {metadata.display_name}")

        if metadata.accepts_commands:
            username = self.store.get_verified_username(phone)
            return await self.router.handle(username, text)

        if state == VerificationState.PENDING and is_verification_code(text):
            return await self.machine.submit_code(phone, text)

        if text:
            return await self.machine.submit_identifier(phone, text)

        return None

    async def send_response(self, phone: str, reply: str) -> bool:
        try:
            sent = await self.transport.send_text(phone, reply)
        except Exception as e:
            logger.error(f"❌ Failed to send reply: {e}", exc_info=True)
            return False

        if not sent:
            logger.error("❌ Transport rejected reply")
        return sent
