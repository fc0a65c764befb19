"""
app/services/backend_client.py

Purpose: Backend admin API integration

- Looks up users by username or email
- Opens and updates verification tickets
- Fetches order details
- Converts every failure into NotFoundError / RemoteFailureError
"""

import httpx
from pydantic import ValidationError
from typing import Any, Dict, Optional
from urllib.parse import quote

from app.core.config import Settings, settings as default_settings
from app.core.exceptions import NotFoundError, RemoteFailureError
from app.core.logging import get_logger
from app.schemas.backend import BackendEnvelope, BackendOrder, BackendUser
from utils.constants import (
    TICKET_OPEN_MESSAGE,
    TICKET_RESOLVED_MESSAGE,
    TICKET_RESOLVED_STATUS,
    TICKET_SUBJECT,
)

logger = get_logger(__name__)


class BackendClient:
    """
    Async client for the backend admin API.

    Args:
        base_url: API root, e.g. https://example.com/adminapi/v2
        api_key: Sent as X-Api-Key on every request
        timeout: Per-request timeout in seconds
        transport: Optional httpx transport (tests pass a MockTransport)
    """

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str],
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers={
                "Content-Type": "application/json",
                "X-Api-Key": api_key or "",
            },
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    @classmethod
    def from_settings(cls, current: Optional[Settings] = None) -> "BackendClient":
        current = current or default_settings
        return cls(
            current.BACKEND_BASE_URL,
            current.BACKEND_API_KEY,
            timeout=current.BACKEND_TIMEOUT_SECONDS,
        )

    async def close(self):
        """Close the underlying HTTP client."""
        if not self._client.is_closed:
            await self._client.aclose()

    async def _request(self, method: str, path: str, json: Optional[Dict[str, Any]] = None) -> BackendEnvelope:
        """
        Performs one request and unwraps the application envelope.

        Raises:
            NotFoundError: On HTTP 404
            RemoteFailureError: On network errors, timeouts, other non-2xx
                statuses, malformed bodies and non-zero error_code
        """
        try:
            response = await self._client.request(method, path, json=json)
        except httpx.TimeoutException:
            logger.error(f"Backend timeout: {method} {path}")
            raise RemoteFailureError("Backend request timed out", details={"path": path})
        except httpx.HTTPError as e:
            logger.error(f"Network error calling backend {method} {path}: {e}")
            raise RemoteFailureError("Unable to reach backend", details={"path": path})

        if response.status_code == 404:
            raise NotFoundError(details={"path": path})

        if response.is_error:
            logger.error(f"Backend HTTP error: {response.status_code} {method} {path}")
            raise RemoteFailureError(
                f"Backend returned HTTP {response.status_code}",
                details={"path": path, "status_code": response.status_code}
            )

        try:
            envelope = BackendEnvelope.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            logger.error(f"Malformed backend response for {method} {path}: {e}")
            raise RemoteFailureError("Malformed backend response", details={"path": path})

        if envelope.error_code != 0:
            logger.error(
                f"Backend application error {envelope.error_code} for {method} {path}: {envelope.error_message}"
            )
            raise RemoteFailureError(
                envelope.error_message or "Backend application error",
                details={"path": path, "error_code": envelope.error_code}
            )

        return envelope

    async def find_user_by_identifier(self, identifier: str) -> Optional[BackendUser]:
        """
        Finds a user whose username or email equals the identifier.

        Args:
            identifier: Username or email, matched case-sensitively

        Returns:
            The user, or None if nobody matches
        """
        envelope = await self._request("GET", "/users")

        try:
            rows = envelope.data["list"]
        except (KeyError, TypeError) as e:
            logger.error(f"Malformed user listing: {e}")
            raise RemoteFailureError("Malformed user listing")

        if not isinstance(rows, list):
            logger.error(f"User listing is {type(rows).__name__}, expected a list")
            raise RemoteFailureError("Malformed user listing")

        # One bad row must not block lookups for everyone else
        skipped = 0
        for row in rows:
            try:
                user = BackendUser.model_validate(row)
            except ValidationError:
                skipped += 1
                continue
            if user.matches(identifier):
                return user

        if skipped:
            logger.warning(f"Skipped {skipped} malformed user row(s) in listing")
        return None

    async def create_verification_ticket(self, username: str) -> str:
        """
        Opens a verification ticket for a user.

        Returns:
            The backend ticket id
        """
        envelope = await self._request(
            "POST",
            "/tickets/add",
            json={
                "username": username,
                "subject": TICKET_SUBJECT,
                "message": TICKET_OPEN_MESSAGE.format(username=username),
            },
        )

        try:
            ticket_id = envelope.data["ticket_id"]
        except (KeyError, TypeError):
            logger.error(f"Ticket response without ticket_id for {username}")
            raise RemoteFailureError("Malformed ticket response")

        logger.info(f"Verification ticket {ticket_id} opened for {username}")
        return str(ticket_id)

    async def resolve_ticket(
        self,
        ticket_id: str,
        status: str = TICKET_RESOLVED_STATUS,
        message: str = TICKET_RESOLVED_MESSAGE,
    ):
        """Updates a ticket's status."""
        await self._request(
            "POST",
            "/tickets/update",
            json={"ticket_id": ticket_id, "status": status, "message": message},
        )
        logger.info(f"Ticket {ticket_id} marked {status}")

    async def fetch_order(self, order_id: str) -> BackendOrder:
        """
        Fetches one order.

        Raises:
            NotFoundError: If the order does not exist
            RemoteFailureError: On any other failure
        """
        envelope = await self._request("GET", f"/orders/{quote(order_id, safe='')}")

        if envelope.data is None:
            raise NotFoundError("Order not found", details={"order_id": order_id})

        try:
            return BackendOrder.model_validate(envelope.data)
        except ValidationError as e:
            logger.error(f"Malformed order payload for {order_id}: {e}")
            raise RemoteFailureError("Malformed order payload", details={"order_id": order_id})
