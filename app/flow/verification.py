"""
app/flow/verification.py

Handles: identifier submission and one-time code confirmation

Flow:
1. User sends a username or email
2. Backend lookup, verification ticket opened, code issued
3. User replies with the 6-digit code
4. Phone becomes verified; the ticket is resolved in the background

Expiry is checked lazily when a code arrives. A new identifier while a
code is pending restarts the flow and replaces the old code.
"""

import asyncio
from datetime import timedelta
from typing import Optional, Set

from app.core.exceptions import ExpiredStateError, NoActiveSessionError
from app.core.logging import get_logger, LogContext
from app.services.backend_client import BackendClient
from app.services.code_service import generate_verification_code
from app.services.session_store import PendingVerification, SessionStore
from utils.constants import (
    CODE_EXPIRED_MESSAGE,
    CODE_ISSUED_MESSAGE,
    INVALID_CODE_MESSAGE,
    NO_ACTIVE_REQUEST_MESSAGE,
    TICKET_CLOSED_STATUS,
    TICKET_EXPIRED_MESSAGE,
    TICKET_SUPERSEDED_MESSAGE,
    USER_NOT_FOUND_MESSAGE,
    VERIFICATION_INIT_FAILED_MESSAGE,
    VERIFICATION_SUCCESS_MESSAGE,
)
from utils.time_utils import Clock, is_code_expired, utcnow

logger = get_logger(__name__)


class VerificationStateMachine:
    """
    Drives a phone from UNKNOWN through PENDING to VERIFIED.

    Args:
        store: Session store holding all verification state
        backend: Backend API client
        code_ttl: Lifetime of an issued code
        clock: Returns the current aware datetime
        cancel_orphaned_tickets: Close tickets of superseded or expired
            requests instead of leaving them open
    """

    def __init__(
        self,
        store: SessionStore,
        backend: BackendClient,
        *,
        code_ttl: timedelta = timedelta(minutes=10),
        clock: Clock = utcnow,
        cancel_orphaned_tickets: bool = False,
    ):
        self._store = store
        self._backend = backend
        self._code_ttl = code_ttl
        self._clock = clock
        self._cancel_orphaned_tickets = cancel_orphaned_tickets
        self._background: Set[asyncio.Task] = set()

    async def submit_identifier(self, phone: str, identifier: str) -> str:
        """
        UNKNOWN/PENDING -> PENDING: looks up the account and issues a code.

        Nothing is stored unless lookup and ticket creation both succeed.

        Returns:
            Reply text for the user
        """
        with LogContext(phone=phone, state=self._store.get_state(phone).value):
            try:
                user = await self._backend.find_user_by_identifier(identifier)
                if user is None:
                    logger.info("Identifier not found")
                    return USER_NOT_FOUND_MESSAGE

                ticket_id = await self._backend.create_verification_ticket(user.username)
            except Exception as e:
                logger.error(f"Could not initiate verification: {e}", exc_info=True)
                return VERIFICATION_INIT_FAILED_MESSAGE

            superseded = self._store.get_pending_verification(phone)
            if superseded is not None:
                self._release_orphaned_ticket(superseded, TICKET_SUPERSEDED_MESSAGE)

            code = generate_verification_code()
            self._store.set_pending_ticket(user.username, ticket_id)
            self._store.begin_pending_verification(phone, user.username, code, self._clock(), ticket_id=ticket_id)

            logger.info(
                "Verification code issued",
                extra={"username": user.username, "ticket_id": ticket_id}
            )

            return CODE_ISSUED_MESSAGE.format(
                username=user.username,
                code=code,
                ttl_minutes=int(self._code_ttl.total_seconds() // 60),
            )

    async def submit_code(self, phone: str, code: str) -> str:
        """
        PENDING -> VERIFIED on a matching, unexpired code.

        A wrong code leaves the request in place for another try. An expired
        code drops it. The ticket is resolved after the phone is verified and
        never affects the outcome.

        Returns:
            Reply text for the user
        """
        with LogContext(phone=phone, state=self._store.get_state(phone).value):
            try:
                pending = self._check_pending(phone)
            except NoActiveSessionError:
                logger.info("Code submitted without an active request")
                return NO_ACTIVE_REQUEST_MESSAGE
            except ExpiredStateError:
                return CODE_EXPIRED_MESSAGE

            if code != pending.code:
                logger.info("Invalid verification code")
                return INVALID_CODE_MESSAGE

            username = self._store.complete_pending_verification(phone)
            logger.info(f"Phone verified as {username}", extra={"username": username})

            ticket_id = self._claim_ticket(pending)
            if ticket_id:
                self._spawn(self._resolve_ticket(ticket_id))

            return VERIFICATION_SUCCESS_MESSAGE.format(username=username)

    def _check_pending(self, phone: str) -> PendingVerification:
        """
        Returns the live pending verification for a phone.

        Raises:
            NoActiveSessionError: Nothing is pending
            ExpiredStateError: The code expired; the entry is removed
        """
        pending = self._store.get_pending_verification(phone)
        if pending is None:
            raise NoActiveSessionError(details={"phone": phone})

        if is_code_expired(pending.issued_at, self._clock(), self._code_ttl):
            self._store.expire_pending_verification(phone)
            logger.info("Verification code expired", extra={"username": pending.username})
            self._release_orphaned_ticket(pending, TICKET_EXPIRED_MESSAGE)
            raise ExpiredStateError(details={"phone": phone})

        return pending

    def sweep_expired(self) -> int:
        """
        Drops every expired pending verification.

        Returns:
            Number of entries removed
        """
        expired = self._store.sweep_expired(self._clock(), self._code_ttl)
        for pending in expired:
            self._release_orphaned_ticket(pending, TICKET_EXPIRED_MESSAGE)
        if expired:
            logger.info(f"Swept {len(expired)} expired verification(s)")
        return len(expired)

    # -- Tickets -------------------------------------------------------------

    def _claim_ticket(self, pending: PendingVerification) -> Optional[str]:
        """
        Returns the ticket opened for this pending request and drops its map
        entry, unless a newer request for the username has replaced it.
        """
        if pending.ticket_id is None:
            return self._store.take_pending_ticket(pending.username)
        self._store.release_pending_ticket(pending.username, pending.ticket_id)
        return pending.ticket_id

    def _release_orphaned_ticket(self, pending: PendingVerification, reason: str):
        ticket_id = self._claim_ticket(pending)
        if not ticket_id:
            return

        if self._cancel_orphaned_tickets:
            self._spawn(self._resolve_ticket(ticket_id, status=TICKET_CLOSED_STATUS, message=reason))
        else:
            logger.warning(
                f"Ticket {ticket_id} left open: {reason}",
                extra={"username": pending.username, "ticket_id": ticket_id}
            )

    async def _resolve_ticket(self, ticket_id: str, **kwargs):
        try:
            await self._backend.resolve_ticket(ticket_id, **kwargs)
        except Exception as e:
            # Ticket bookkeeping is advisory; the verification outcome stands
            logger.warning(f"Failed to update ticket {ticket_id}: {e}", extra={"ticket_id": ticket_id})

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def wait_for_background_tasks(self, timeout: Optional[float] = None):
        """Waits for pending ticket updates, e.g. on shutdown."""
        if not self._background:
            return
        await asyncio.wait(set(self._background), timeout=timeout)
