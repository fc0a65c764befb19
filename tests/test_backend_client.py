"""Tests for the backend admin API client over httpx.MockTransport."""

import json

import httpx
import pytest

from app.core.exceptions import NotFoundError, RemoteFailureError
from app.services.backend_client import BackendClient

BASE_URL = "https://backend.test/adminapi/v2"

USERS = {
    "data": {
        "list": [
            {"id": 1, "username": "alice", "email": "alice@example.com", "balance": "3.50"},
            {"id": 2, "username": "carol", "email": "carol@example.com"},
        ]
    }
}


def make_client(handler):
    return BackendClient(BASE_URL, "secret-key", timeout=5.0, transport=httpx.MockTransport(handler))


class TestUserLookup:

    @pytest.mark.asyncio
    async def test_lookup_by_username_and_email(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=USERS)

        client = make_client(handler)
        try:
            by_name = await client.find_user_by_identifier("alice")
            by_email = await client.find_user_by_identifier("carol@example.com")
        finally:
            await client.close()

        assert by_name.username == "alice"
        assert by_email.username == "carol"
        assert seen[0].url.path == "/adminapi/v2/users"
        assert seen[0].headers["X-Api-Key"] == "secret-key"

    @pytest.mark.asyncio
    async def test_lookup_miss_returns_none(self):
        client = make_client(lambda request: httpx.Response(200, json=USERS))
        try:
            assert await client.find_user_by_identifier("ALICE") is None
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_malformed_listing(self):
        client = make_client(lambda request: httpx.Response(200, json={"data": {}}))
        try:
            with pytest.raises(RemoteFailureError):
                await client.find_user_by_identifier("alice")
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_non_json_body(self):
        client = make_client(lambda request: httpx.Response(200, text="<html>maintenance</html>"))
        try:
            with pytest.raises(RemoteFailureError):
                await client.find_user_by_identifier("alice")
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        client = make_client(handler)
        try:
            with pytest.raises(RemoteFailureError):
                await client.find_user_by_identifier("alice")
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        client = make_client(handler)
        try:
            with pytest.raises(RemoteFailureError):
                await client.find_user_by_identifier("alice")
        finally:
            await client.close()


class TestTickets:

    @pytest.mark.asyncio
    async def test_create_ticket(self):
        bodies = []

        def handler(request):
            bodies.append(json.loads(request.content))
            assert request.url.path == "/adminapi/v2/tickets/add"
            return httpx.Response(200, json={"error_code": 0, "data": {"ticket_id": 77}})

        client = make_client(handler)
        try:
            ticket_id = await client.create_verification_ticket("alice")
        finally:
            await client.close()

        assert ticket_id == "77"
        assert bodies == [{
            "username": "alice",
            "subject": "WhatsApp Verification Request",
            "message": "User alice requesting WhatsApp verification",
        }]

    @pytest.mark.asyncio
    async def test_create_ticket_application_error(self):
        client = make_client(lambda request: httpx.Response(
            200, json={"error_code": 101, "error_message": "User is banned"}
        ))
        try:
            with pytest.raises(RemoteFailureError) as exc_info:
                await client.create_verification_ticket("alice")
        finally:
            await client.close()

        assert exc_info.value.details["error_code"] == 101

    @pytest.mark.asyncio
    async def test_resolve_ticket(self):
        bodies = []

        def handler(request):
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json={"error_code": 0})

        client = make_client(handler)
        try:
            await client.resolve_ticket("77")
        finally:
            await client.close()

        assert bodies == [{
            "ticket_id": "77",
            "status": "resolved",
            "message": "User successfully verified via WhatsApp",
        }]


class TestOrders:

    @pytest.mark.asyncio
    async def test_fetch_order(self):
        paths = []

        def handler(request):
            paths.append(request.url.raw_path)
            return httpx.Response(200, json={"error_code": 0, "data": {
                "id": 12345, "service_name": "Followers", "status": "Pending",
                "quantity": 100, "remains": 100, "created": "2024-01-01", "link": None,
            }})

        client = make_client(handler)
        try:
            order = await client.fetch_order("12345")
        finally:
            await client.close()

        assert order.id == "12345"
        assert order.quantity == "100"
        assert order.link is None
        assert paths == [b"/adminapi/v2/orders/12345"]

    @pytest.mark.asyncio
    async def test_order_id_is_escaped(self):
        paths = []

        def handler(request):
            paths.append(request.url.raw_path)
            return httpx.Response(404)

        client = make_client(handler)
        try:
            with pytest.raises(NotFoundError):
                await client.fetch_order("../users")
        finally:
            await client.close()

        assert paths == [b"/adminapi/v2/orders/..%2Fusers"]

    @pytest.mark.asyncio
    async def test_order_application_error(self):
        client = make_client(lambda request: httpx.Response(
            200, json={"error_code": 404, "error_message": "Order not found"}
        ))
        try:
            with pytest.raises(RemoteFailureError):
                await client.fetch_order("999")
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_server_error(self):
        client = make_client(lambda request: httpx.Response(500, text="oops"))
        try:
            with pytest.raises(RemoteFailureError):
                await client.fetch_order("1")
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_incomplete_order_payload(self):
        client = make_client(lambda request: httpx.Response(
            200, json={"error_code": 0, "data": {"id": 1, "status": "Pending"}}
        ))
        try:
            with pytest.raises(RemoteFailureError):
                await client.fetch_order("1")
        finally:
            await client.close()


class TestMalformedRows:

    @pytest.mark.asyncio
    async def test_bad_rows_are_skipped(self):
        listing = {"data": {"list": [
            {"id": 9, "username": None, "email": "ghost@example.com"},
            {"id": 10, "email": "nameless@example.com"},
            {"id": 1, "username": "alice", "email": "alice@example.com"},
        ]}}
        client = make_client(lambda request: httpx.Response(200, json=listing))
        try:
            user = await client.find_user_by_identifier("alice")
            missing = await client.find_user_by_identifier("ghost@example.com")
        finally:
            await client.close()

        assert user.username == "alice"
        assert missing is None

    @pytest.mark.asyncio
    async def test_listing_that_is_not_a_list(self):
        client = make_client(lambda request: httpx.Response(200, json={"data": {"list": {"alice": 1}}}))
        try:
            with pytest.raises(RemoteFailureError):
                await client.find_user_by_identifier("alice")
        finally:
            await client.close()
