"""
app/flow/commands.py

Handles: commands from verified users

- /help          -> account help
- /order <id>    -> order status card
- anything else  -> greeting and menu
"""

from app.core.exceptions import InvalidInputError
from app.core.logging import get_logger
from app.schemas.backend import BackendOrder
from app.services.backend_client import BackendClient
from utils.constants import (
    DEFAULT_MENU_MESSAGE,
    HELP_COMMAND,
    HELP_MESSAGE,
    LINK_PLACEHOLDER,
    ORDER_COMMAND,
    ORDER_FETCH_FAILED_MESSAGE,
    ORDER_STATUS_MESSAGE,
    ORDER_USAGE_MESSAGE,
)
from utils.validation_utils import parse_command, parse_order_id

logger = get_logger(__name__)


def format_order_card(order: BackendOrder) -> str:
    return ORDER_STATUS_MESSAGE.format(
        id=order.id,
        service_name=order.service_name,
        status=order.status,
        quantity=order.quantity,
        remains=order.remains,
        created=order.created,
        link=order.link or LINK_PLACEHOLDER,
    )


class CommandRouter:
    """Parses and answers commands for a verified username."""

    def __init__(self, backend: BackendClient):
        self._backend = backend

    async def handle(self, username: str, text: str) -> str:
        command, arguments = parse_command(text)

        if command == HELP_COMMAND:
            return HELP_MESSAGE.format(username=username)

        if command == ORDER_COMMAND:
            return await self._order_status(username, arguments)

        return DEFAULT_MENU_MESSAGE.format(username=username)

    async def _order_status(self, username: str, arguments: str) -> str:
        try:
            order_id = parse_order_id(arguments)
        except InvalidInputError:
            return ORDER_USAGE_MESSAGE

        try:
            order = await self._backend.fetch_order(order_id)
        except Exception as e:
            # Not-found and remote failures get the same reply
            logger.error(f"Order check error for {order_id}: {e}", extra={"username": username})
            return ORDER_FETCH_FAILED_MESSAGE

        logger.info(f"Order {order_id} fetched", extra={"username": username})
        return format_order_card(order)
