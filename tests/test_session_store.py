"""Tests for the in-memory session store and its state invariants."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from app.core.exceptions import NoActiveSessionError
from app.flow.states import VerificationState, is_valid_transition
from app.services.session_store import SessionStore

PHONE = "+15550001111"
ISSUED = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def assert_single_state(store, phone):
    pending = store.get_pending_verification(phone) is not None
    verified = store.get_verified_username(phone) is not None
    assert not (pending and verified)


class TestPendingVerification:

    def test_unknown_phone(self):
        store = SessionStore()
        assert store.get_state(PHONE) == VerificationState.UNKNOWN
        assert store.get_pending_verification(PHONE) is None
        assert store.get_verified_username(PHONE) is None

    def test_begin_makes_phone_pending(self):
        store = SessionStore()
        pending = store.begin_pending_verification(PHONE, "alice", "123456", ISSUED)

        assert store.get_state(PHONE) == VerificationState.PENDING
        assert store.get_pending_verification(PHONE) == pending
        assert pending.username == "alice"
        assert pending.issued_at == ISSUED

    def test_last_writer_wins(self):
        store = SessionStore()
        store.begin_pending_verification(PHONE, "alice", "111111", ISSUED)
        store.begin_pending_verification(PHONE, "carol", "222222", ISSUED + timedelta(minutes=1))

        pending = store.get_pending_verification(PHONE)
        assert pending.username == "carol"
        assert pending.code == "222222"

    def test_expire_removes_without_verifying(self):
        store = SessionStore()
        store.begin_pending_verification(PHONE, "alice", "123456", ISSUED)

        removed = store.expire_pending_verification(PHONE)

        assert removed.username == "alice"
        assert store.get_state(PHONE) == VerificationState.UNKNOWN
        assert store.expire_pending_verification(PHONE) is None


class TestCompletion:

    def test_complete_moves_pending_to_verified(self):
        store = SessionStore()
        store.begin_pending_verification(PHONE, "alice", "123456", ISSUED)

        username = store.complete_pending_verification(PHONE)

        assert username == "alice"
        assert store.get_state(PHONE) == VerificationState.VERIFIED
        assert store.get_pending_verification(PHONE) is None
        assert store.get_verified_username(PHONE) == "alice"
        assert_single_state(store, PHONE)

    def test_complete_without_pending_raises(self):
        store = SessionStore()
        with pytest.raises(NoActiveSessionError):
            store.complete_pending_verification(PHONE)
        assert store.get_state(PHONE) == VerificationState.UNKNOWN

    def test_verified_phone_cannot_become_pending_again(self):
        store = SessionStore()
        store.begin_pending_verification(PHONE, "alice", "123456", ISSUED)
        store.complete_pending_verification(PHONE)

        with pytest.raises(ValueError):
            store.begin_pending_verification(PHONE, "carol", "654321", ISSUED)

        assert store.get_verified_username(PHONE) == "alice"
        assert_single_state(store, PHONE)


class TestTickets:

    def test_take_reads_then_removes(self):
        store = SessionStore()
        store.set_pending_ticket("alice", "T1")

        assert store.take_pending_ticket("alice") == "T1"
        assert store.take_pending_ticket("alice") is None

    def test_set_overwrites(self):
        store = SessionStore()
        store.set_pending_ticket("alice", "T1")
        store.set_pending_ticket("alice", "T2")
        assert store.take_pending_ticket("alice") == "T2"

    def test_release_only_removes_a_matching_ticket(self):
        store = SessionStore()
        store.set_pending_ticket("alice", "T2")

        assert store.release_pending_ticket("alice", "T1") is False
        assert store.release_pending_ticket("alice", "T2") is True
        assert store.take_pending_ticket("alice") is None

    def test_pending_entry_records_its_ticket(self):
        store = SessionStore()
        pending = store.begin_pending_verification(PHONE, "alice", "123456", ISSUED, ticket_id="T1")
        assert pending.ticket_id == "T1"


class TestSweep:

    def test_sweep_removes_only_expired(self):
        store = SessionStore()
        store.begin_pending_verification("+1", "alice", "111111", ISSUED)
        store.begin_pending_verification("+2", "carol", "222222", ISSUED + timedelta(minutes=5))

        removed = store.sweep_expired(ISSUED + timedelta(minutes=10), timedelta(minutes=10))

        assert [p.phone for p in removed] == ["+1"]
        assert store.get_state("+1") == VerificationState.UNKNOWN
        assert store.get_state("+2") == VerificationState.PENDING

    def test_stats(self):
        store = SessionStore()
        store.begin_pending_verification("+1", "alice", "111111", ISSUED)
        store.begin_pending_verification("+2", "carol", "222222", ISSUED)
        store.complete_pending_verification("+2")
        store.set_pending_ticket("alice", "T1")

        assert store.stats() == {"pending": 1, "verified": 1, "open_tickets": 1}


def test_lock_is_per_phone():
    store = SessionStore()
    assert store.lock("+1") is store.lock("+1")
    assert store.lock("+1") is not store.lock("+2")


def test_verified_is_terminal():
    assert not is_valid_transition(VerificationState.VERIFIED, VerificationState.PENDING)
    assert not is_valid_transition(VerificationState.VERIFIED, VerificationState.UNKNOWN)
    assert is_valid_transition(VerificationState.PENDING, VerificationState.UNKNOWN)
    assert not is_valid_transition(VerificationState.UNKNOWN, VerificationState.VERIFIED)


@pytest.mark.asyncio
async def test_idle_locks_are_dropped():
    store = SessionStore()

    async with store.locked("+1"):
        assert store.active_lock_count() == 1

    assert store.active_lock_count() == 0


@pytest.mark.asyncio
async def test_lock_kept_while_a_waiter_is_queued():
    store = SessionStore()
    order = []

    async def handle(name, delay):
        async with store.locked("+1"):
            order.append(f"{name}-start")
            await asyncio.sleep(delay)
            order.append(f"{name}-end")

    first = asyncio.create_task(handle("a", 0.01))
    await asyncio.sleep(0)
    second = asyncio.create_task(handle("b", 0))
    await asyncio.sleep(0)
    assert store.active_lock_count() == 1

    await asyncio.gather(first, second)

    assert order == ["a-start", "a-end", "b-start", "b-end"]
    assert store.active_lock_count() == 0
