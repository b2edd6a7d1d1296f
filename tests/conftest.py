"""
Shared pytest fixtures for the Flow client tests.

The HTTP transport is a ``MagicMock`` standing in for
``requests.Session``: ``post`` serves the token endpoint and
``request`` serves the entity endpoints.  Time comes from a
:class:`FakeClock` so token expiry can be stepped through.
"""

import json
from typing import Any, Optional
from unittest.mock import MagicMock

import pytest
import requests

from flow_api_client import FlowClient

SITE_URL = "https://studio.shotgunstudio.com"


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_response(
    status_code: int = 200,
    json_data: Any = None,
    text: Optional[str] = None,
) -> MagicMock:
    """Build a mock ``requests.Response``."""
    response = MagicMock()
    response.status_code = status_code
    if text is None:
        text = json.dumps(json_data) if json_data is not None else ""
    response.text = text
    try:
        parsed = json.loads(text)
    except ValueError:
        response.json.side_effect = ValueError("Expecting value")
    else:
        response.json.return_value = parsed
    return response


def token_response(access_token: str = "token-1", expires_in: int = 3600) -> MagicMock:
    return make_response(
        200,
        {
            "token_type": "Bearer",
            "access_token": access_token,
            "expires_in": expires_in,
            "refresh_token": "refresh-" + access_token,
        },
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def mock_session():
    """A mock session whose token endpoint always succeeds."""
    session = MagicMock(spec=requests.Session)
    session.post.return_value = token_response()
    return session


@pytest.fixture
def client(mock_session, clock):
    return FlowClient(
        site_url=SITE_URL,
        script_name="pipeline_script",
        script_key="s3cr3t",
        session=mock_session,
        clock=clock,
    )
