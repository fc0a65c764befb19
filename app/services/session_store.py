"""
app/services/session_store.py

Purpose: Verification session state

- Pending verifications keyed by phone
- Verified sessions keyed by phone
- Open verification tickets keyed by username
- Per-phone locks for serializing message handling, dropped once idle
- Memory-resident only; nothing survives a restart
"""

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from app.core.exceptions import NoActiveSessionError
from app.core.logging import get_logger
from app.flow.states import VerificationState, is_valid_transition
from utils.time_utils import is_code_expired

logger = get_logger(__name__)


@dataclass(frozen=True)
class PendingVerification:
    phone: str
    code: str
    username: str
    issued_at: datetime
    ticket_id: Optional[str] = None


class SessionStore:
    """
    Single source of truth for verification state. No network calls.

    Methods are synchronous, so each one runs without interleaving on the
    event loop. Callers that span awaits hold ``locked(phone)``.
    """

    def __init__(self):
        self._pending: Dict[str, PendingVerification] = {}
        self._verified: Dict[str, str] = {}
        self._pending_tickets: Dict[str, str] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Dict[str, int] = {}

    def lock(self, phone: str) -> asyncio.Lock:
        """Returns the lock serializing all work for one phone."""
        lock = self._locks.get(phone)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[phone] = lock
        return lock

    @asynccontextmanager
    async def locked(self, phone: str):
        """
        Holds the phone's lock for the duration of the block.

        The lock is forgotten once no task holds or waits for it, so the
        lock map only contains phones with messages in flight.
        """
        self._lock_users[phone] = self._lock_users.get(phone, 0) + 1
        try:
            async with self.lock(phone):
                yield
        finally:
            self._lock_users[phone] -= 1
            if not self._lock_users[phone]:
                del self._lock_users[phone]
                self._locks.pop(phone, None)

    def active_lock_count(self) -> int:
        return len(self._locks)

    def get_state(self, phone: str) -> VerificationState:
        if phone in self._verified:
            return VerificationState.VERIFIED
        if phone in self._pending:
            return VerificationState.PENDING
        return VerificationState.UNKNOWN

    def _check_transition(self, phone: str, to_state: VerificationState) -> VerificationState:
        current = self.get_state(phone)
        if not is_valid_transition(current, to_state):
            logger.warning(f"Invalid state transition attempted: {current.value} -> {to_state.value}", extra={"phone": phone})
            raise ValueError(f"Invalid state transition: {current.value} -> {to_state.value}")
        return current

    # -- Verified sessions ---------------------------------------------------

    def get_verified_username(self, phone: str) -> Optional[str]:
        return self._verified.get(phone)

    # -- Pending verifications -----------------------------------------------

    def begin_pending_verification(
        self,
        phone: str,
        username: str,
        code: str,
        issued_at: datetime,
        ticket_id: Optional[str] = None,
    ) -> PendingVerification:
        """
        Stores a pending verification, replacing any earlier one for the phone.

        Raises:
            ValueError: If the phone is already verified
        """
        self._check_transition(phone, VerificationState.PENDING)
        pending = PendingVerification(
            phone=phone, code=code, username=username, issued_at=issued_at, ticket_id=ticket_id
        )
        self._pending[phone] = pending
        return pending

    def get_pending_verification(self, phone: str) -> Optional[PendingVerification]:
        return self._pending.get(phone)

    def complete_pending_verification(self, phone: str) -> str:
        """
        Moves a phone from pending to verified in one step.

        Returns:
            The username now bound to the phone

        Raises:
            NoActiveSessionError: If nothing is pending for the phone
        """
        pending = self._pending.get(phone)
        if pending is None:
            raise NoActiveSessionError(details={"phone": phone})
        self._check_transition(phone, VerificationState.VERIFIED)

        # No await between the two writes: the phone is never in neither map
        self._verified[phone] = pending.username
        del self._pending[phone]
        return pending.username

    def expire_pending_verification(self, phone: str) -> Optional[PendingVerification]:
        """Drops the pending entry without verifying the phone."""
        return self._pending.pop(phone, None)

    def sweep_expired(self, now: datetime, ttl: timedelta) -> List[PendingVerification]:
        """
        Removes every pending verification whose code has expired.

        Returns:
            The removed entries
        """
        expired = [
            pending for pending in self._pending.values()
            if is_code_expired(pending.issued_at, now, ttl)
        ]
        for pending in expired:
            del self._pending[pending.phone]
        return expired

    # -- Tickets -------------------------------------------------------------

    def set_pending_ticket(self, username: str, ticket_id: str):
        self._pending_tickets[username] = ticket_id

    def take_pending_ticket(self, username: str) -> Optional[str]:
        """Reads and removes the open ticket for a username."""
        return self._pending_tickets.pop(username, None)

    def release_pending_ticket(self, username: str, ticket_id: str) -> bool:
        """
        Removes the username's entry only while it still maps to ticket_id.

        Another phone may have opened a newer ticket for the same username;
        that entry is left alone.
        """
        if self._pending_tickets.get(username) != ticket_id:
            return False
        del self._pending_tickets[username]
        return True

    # -- Monitoring ----------------------------------------------------------

    def stats(self) -> Dict[str, int]:
        return {
            "pending": len(self._pending),
            "verified": len(self._verified),
            "open_tickets": len(self._pending_tickets),
        }
