"""Shared fixtures: in-memory backend, transport and clock fakes."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from app.core.exceptions import NotFoundError
from app.flow.commands import CommandRouter
from app.flow.dispatcher import MessageDispatcher
from app.flow.verification import VerificationStateMachine
from app.schemas.backend import BackendOrder, BackendUser
from app.services.session_store import SessionStore


class FakeClock:
    def __init__(self, start=None):
        self.now = start or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class FakeBackend:
    """Stands in for BackendClient; records every call."""

    def __init__(self):
        self.users = [
            BackendUser(username="alice", email="alice@example.com"),
            BackendUser(username="carol", email="carol@example.com"),
        ]
        self.orders = {}
        self.opened_tickets = []
        self.ticket_updates = []
        self.lookup_error = None
        self.ticket_error = None
        self.resolve_error = None
        self.order_error = None
        self.lookup_delay = 0.0
        self.in_flight = 0
        self.max_in_flight = 0
        self._next_ticket = 1

    async def find_user_by_identifier(self, identifier):
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.lookup_delay:
                await asyncio.sleep(self.lookup_delay)
            if self.lookup_error:
                raise self.lookup_error
            return next((user for user in self.users if user.matches(identifier)), None)
        finally:
            self.in_flight -= 1

    async def create_verification_ticket(self, username):
        if self.ticket_error:
            raise self.ticket_error
        ticket_id = f"T{self._next_ticket}"
        self._next_ticket += 1
        self.opened_tickets.append((username, ticket_id))
        return ticket_id

    async def resolve_ticket(self, ticket_id, status="resolved", message=""):
        if self.resolve_error:
            raise self.resolve_error
        self.ticket_updates.append((ticket_id, status))

    async def fetch_order(self, order_id):
        if self.order_error:
            raise self.order_error
        if order_id not in self.orders:
            raise NotFoundError("Order not found")
        return self.orders[order_id]


class FakeTransport:
    def __init__(self):
        self.sent = []
        self.fail = False

    async def send_text(self, recipient_id, body):
        self.sent.append((recipient_id, body))
        return not self.fail


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def store():
    return SessionStore()


@pytest.fixture
def machine(store, backend, clock):
    return VerificationStateMachine(store, backend, code_ttl=timedelta(minutes=10), clock=clock)


@pytest.fixture
def router(backend):
    return CommandRouter(backend)


@pytest.fixture
def dispatcher(store, machine, router, transport):
    return MessageDispatcher(store=store, machine=machine, router=router, transport=transport)


@pytest.fixture
def fixed_code(monkeypatch):
    """Makes the state machine issue a known code."""
    monkeypatch.setattr("app.flow.verification.generate_verification_code", lambda: "482913")
    return "482913"


@pytest.fixture
def sample_order():
    return BackendOrder.model_validate({
        "id": 12345,
        "service_name": "Instagram Followers",
        "status": "In progress",
        "quantity": 1000,
        "remains": 250,
        "created": "2024-01-01 10:00:00",
        "link": "https://instagram.com/alice",
    })
