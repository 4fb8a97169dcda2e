"""
Tests for oget.core.auth.
"""

import base64

import pytest
import requests
from requests.cookies import RequestsCookieJar

from oget.core.auth import (
    AuthenticationClient,
    AuthState,
    Challenge,
    basic_authorization,
)
from oget.core.session import (
    AuthDenied,
    AuthFailed,
    AuthMode,
    Credentials,
    LogoutReportedFailure,
    SessionStateError,
    TransportError,
)

from conftest import SERVICE_ROOT, make_response, sent_requests


CREDS = Credentials("user", "secret")
GOLDEN_PROOF = "EF89E386CB3D9493D04946592A460DFE43CD8C38"


def challenge_response(session_id=None):
    cookies = {"co_SId": session_id} if session_id else None
    return make_response(200, headers={"Challenge": "chal99", "Salt": "ab12"}, cookies=cookies)


def with_two_session_cookies(r):
    """Response that sets co_SId on two paths, outer path first."""
    jar = RequestsCookieJar()
    jar.set("co_SId", "OLD", path="/")
    jar.set("co_SId", "NEW", path="/odata.svc")
    r.cookies = jar
    return r


@pytest.fixture
def client(cfg, transport):
    return AuthenticationClient(cfg, transport)


class TestBasicAuthorization:

    def test_header_value(self):
        assert basic_authorization("odata", "odata") == "Basic b2RhdGE6b2RhdGE="

    def test_round_trip_of_proof(self):
        value = basic_authorization("user", GOLDEN_PROOF)
        decoded = base64.b64decode(value.split(" ", 1)[1]).decode("ascii")
        assert decoded == "user:" + GOLDEN_PROOF


class TestFetchChallenge:

    def test_reads_headers_and_cookie(self, client, transport):
        transport.session.send.return_value = challenge_response("PRE1")

        ch = client.fetch_challenge("user")

        assert ch == Challenge(challenge="chal99", salt="ab12", session_id="PRE1")
        prep = sent_requests(transport)[0]
        assert prep.url == SERVICE_ROOT + "/$challenge"
        assert prep.headers["rq_username"] == "user"

    def test_missing_cookie(self, client, transport):
        transport.session.send.return_value = challenge_response()
        assert client.fetch_challenge("user").session_id == ""

    def test_duplicate_cookie_last_wins(self, client, transport):
        transport.session.send.return_value = with_two_session_cookies(challenge_response())
        assert client.fetch_challenge("user").session_id == "NEW"

    def test_network_failure(self, client, transport):
        transport.session.send.side_effect = requests.ConnectionError("refused")
        with pytest.raises(TransportError) as exc_info:
            client.fetch_challenge("user")
        assert exc_info.value.step == "challenge"
        assert transport.session.send.call_count == 1


class TestChallengeLogin:

    def test_challenge_then_login(self, client, transport):
        transport.session.send.side_effect = [
            challenge_response(),
            make_response(200, cookies={"co_SId": "SID1"}),
        ]

        sid = client.login(AuthMode.CHALLENGE, CREDS)

        assert sid == "SID1"
        assert client.session_id == "SID1"
        assert client.state is AuthState.AUTHENTICATED
        challenge_req, login_req = sent_requests(transport)
        assert challenge_req.url.endswith("/$challenge")
        assert login_req.url == SERVICE_ROOT + "/"
        assert login_req.headers["Authorization"] == basic_authorization("user", GOLDEN_PROOF)
        assert "Cookie" not in login_req.headers

    def test_exactly_one_challenge_per_login(self, client, transport):
        transport.session.send.side_effect = [challenge_response(), make_response(200)]
        client.login(AuthMode.CHALLENGE, CREDS)
        urls = [p.url for p in sent_requests(transport)]
        assert urls == [SERVICE_ROOT + "/$challenge", SERVICE_ROOT + "/"]

    def test_challenge_session_id_is_forwarded(self, client, transport):
        transport.session.send.side_effect = [
            challenge_response("PRE1"),
            make_response(200, cookies={"co_SId": "FINAL"}),
        ]
        sid = client.login(AuthMode.CHALLENGE, CREDS)
        login_req = sent_requests(transport)[1]
        assert login_req.headers["Cookie"] == "co_SId=PRE1"
        assert sid == "FINAL"

    def test_challenge_session_id_kept_without_login_cookie(self, client, transport):
        transport.session.send.side_effect = [challenge_response("PRE1"), make_response(200)]
        assert client.login(AuthMode.CHALLENGE, CREDS) == "PRE1"

    def test_mode_string_accepted(self, client, transport):
        transport.session.send.side_effect = [challenge_response(), make_response(200)]
        client.login("intrexx", CREDS)
        assert transport.session.send.call_count == 2


class TestBasicAndAnonymousLogin:

    def test_basic_never_calls_challenge(self, client, transport):
        transport.session.send.return_value = make_response(200, cookies={"co_SId": "B1"})

        sid = client.login(AuthMode.BASIC, Credentials("odata", "odata"))

        assert sid == "B1"
        (req,) = sent_requests(transport)
        assert req.url == SERVICE_ROOT + "/"
        assert req.headers["Authorization"] == "Basic b2RhdGE6b2RhdGE="
        assert all("$challenge" not in p.url for p in sent_requests(transport))

    def test_duplicate_session_cookie_last_wins(self, client, transport):
        transport.session.send.return_value = with_two_session_cookies(make_response(200))

        sid = client.login(AuthMode.BASIC, CREDS)

        assert sid == "NEW"
        assert client.state is AuthState.AUTHENTICATED

    def test_anonymous_sends_no_auth(self, client, transport):
        transport.session.send.return_value = make_response(200)

        sid = client.login(AuthMode.NONE, CREDS)

        assert sid == ""
        assert client.state is AuthState.AUTHENTICATED
        (req,) = sent_requests(transport)
        assert "Authorization" not in req.headers
        assert "Cookie" not in req.headers


class TestLoginFailures:

    def test_401_is_denied(self, client, transport):
        transport.session.send.side_effect = [
            challenge_response("PRE1"),
            make_response(401, cookies={"co_SId": "NOPE"}, reason="Unauthorized"),
        ]
        with pytest.raises(AuthDenied) as exc_info:
            client.login(AuthMode.CHALLENGE, CREDS)
        assert exc_info.value.status == 401
        assert exc_info.value.step == "login"
        assert client.session_id == ""
        assert client.state is AuthState.UNAUTHENTICATED

    @pytest.mark.parametrize("status", [302, 403, 500])
    def test_other_status_fails(self, client, transport, status):
        transport.session.send.return_value = make_response(status)
        with pytest.raises(AuthFailed) as exc_info:
            client.login(AuthMode.BASIC, CREDS)
        assert exc_info.value.status == status
        assert client.session_id == ""

    def test_transport_failure_on_login(self, client, transport):
        transport.session.send.side_effect = [
            challenge_response(),
            requests.Timeout("slow"),
        ]
        with pytest.raises(TransportError) as exc_info:
            client.login(AuthMode.CHALLENGE, CREDS)
        assert exc_info.value.step == "login"
        assert client.state is AuthState.UNAUTHENTICATED

    def test_login_is_write_once(self, client, transport):
        transport.session.send.return_value = make_response(200, cookies={"co_SId": "B1"})
        client.login(AuthMode.BASIC, CREDS)
        with pytest.raises(SessionStateError):
            client.login(AuthMode.BASIC, CREDS)
        assert client.session_id == "B1"
        assert transport.session.send.call_count == 1


class TestLogout:

    def test_empty_session_makes_no_call(self, client, transport):
        client.logout("")
        assert transport.session.send.call_count == 0
        assert client.state is AuthState.LOGGED_OUT

    def test_logout_sends_cookie_once(self, client, transport):
        transport.session.send.return_value = make_response(200)

        client.logout("abc")

        (req,) = sent_requests(transport)
        assert req.url == SERVICE_ROOT + "/$logout"
        assert req.headers["Cookie"] == "co_SId=abc"
        assert client.state is AuthState.LOGGED_OUT

    def test_defaults_to_own_session(self, client, transport):
        transport.session.send.side_effect = [
            make_response(200, cookies={"co_SId": "B1"}),
            make_response(200),
        ]
        client.login(AuthMode.BASIC, CREDS)
        client.logout()
        assert sent_requests(transport)[1].headers["Cookie"] == "co_SId=B1"
        assert client.session_id == ""

    def test_failure_is_reported_after_teardown(self, client, transport):
        resp = make_response(500, reason="Internal Server Error")
        transport.session.send.return_value = resp

        with pytest.raises(LogoutReportedFailure) as exc_info:
            client.logout("abc")

        assert exc_info.value.status == 500
        assert client.state is AuthState.LOGGED_OUT
        resp.close.assert_called_once()

    def test_network_failure(self, client, transport):
        transport.session.send.side_effect = requests.ConnectionError("gone")
        with pytest.raises(TransportError) as exc_info:
            client.logout("abc")
        assert exc_info.value.step == "logout"
        assert client.state is AuthState.LOGGED_OUT
