"""Tests for request logging context."""

from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from src.core.context import (
    RequestContext,
    clear_context,
    get_context,
    get_request_id,
    get_username,
    set_community_id,
    set_request_id,
)
from src.core.middleware import trace_id_from_headers


@pytest.fixture(autouse=True)
def fresh_context():
    clear_context()
    yield
    clear_context()


class TestContext:
    def test_only_set_values_are_reported(self) -> None:
        set_request_id("req-1")

        assert get_context() == {"request_id": "req-1"}

    def test_community_id_is_stringified(self) -> None:
        community_id = uuid4()
        set_community_id(community_id)

        assert get_context()["community_id"] == str(community_id)

    def test_request_id_is_minted_when_missing(self) -> None:
        assert set_request_id(None) == get_request_id() != ""

    def test_request_context_restores_previous_values(self) -> None:
        set_request_id("outer")

        with RequestContext(username="bob") as scope:
            assert get_username() == "bob"
            assert get_request_id() == scope.request_id != "outer"

        assert get_request_id() == "outer"
        assert get_username() is None


class TestTraceHeaders:
    @pytest.mark.parametrize(
        ("headers", "expected"),
        [
            ({"X-Trace-ID": "abc"}, "abc"),
            (
                {
                    "traceparent": (
                        "00-4bf92f3577b34da6a3ce929d0e0e4736-00f067aa0ba902b7-01"
                    )
                },
                "4bf92f3577b34da6a3ce929d0e0e4736",
            ),
            ({"traceparent": "garbage"}, None),
            ({}, None),
        ],
    )
    def test_trace_id_from_headers(self, headers, expected) -> None:
        assert trace_id_from_headers(headers) == expected


class TestRequestContextMiddleware:
    def test_request_id_is_echoed(self, client: TestClient) -> None:
        response = client.get("/health", headers={"X-Request-ID": "req-42"})

        assert response.headers["X-Request-ID"] == "req-42"

    def test_request_id_is_generated(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.headers["X-Request-ID"]
