"""
Pytest configuration and shared fixtures.
"""

import pytest
from unittest.mock import Mock, patch
from typing import Dict, Optional

import requests
from requests.cookies import cookiejar_from_dict
from requests.structures import CaseInsensitiveDict

from oget.core.session import AuthMode, HttpTransport, OgetConfig


SERVICE_ROOT = "http://localhost:1337/odata.svc"


def make_response(
    status: int = 200,
    body: bytes = b"",
    headers: Optional[Dict[str, str]] = None,
    cookies: Optional[Dict[str, str]] = None,
    reason: str = "OK",
) -> requests.Response:
    """Build a fully read requests.Response without a network."""
    r = requests.Response()
    r.status_code = status
    r.reason = reason
    r._content = body
    r._content_consumed = True
    r.encoding = "utf-8"
    r.headers = CaseInsensitiveDict(headers or {})
    r.cookies = cookiejar_from_dict(cookies or {})
    r.close = Mock(wraps=r.close)
    return r


@pytest.fixture
def response_factory():
    """Factory for canned responses."""
    return make_response


@pytest.fixture
def cfg():
    return OgetConfig(SERVICE_ROOT, AuthMode.CHALLENGE)


@pytest.fixture
def transport(cfg):
    """Real transport whose session.send is replaced by a mock."""
    http = HttpTransport(cfg)
    with patch.object(http.session, "send", return_value=make_response()):
        yield http
    http.close()


def sent_requests(http):
    """PreparedRequests passed to the mocked send, in order."""
    return [c.args[0] for c in http.session.send.call_args_list]
