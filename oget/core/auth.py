"""
oget.core.auth - Intrexx login handshake
=========================================

Challenge, login and logout against an Intrexx OData service. The session
id handed out by the server (``co_SId`` cookie) is captured once and kept
for the rest of the run.
"""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

from requests import Response

from oget.core.ksh import KeyedSaltedHasher
from oget.core.session import (
    SESSION_COOKIE,
    USERNAME_HEADER,
    AuthDenied,
    AuthFailed,
    AuthMode,
    Credentials,
    HttpTransport,
    LogoutReportedFailure,
    OgetConfig,
    SessionStateError,
    mask_secret,
    session_cookie,
)


class AuthState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    CHALLENGE_ISSUED = "challenge_issued"
    AUTHENTICATED = "authenticated"
    LOGGED_OUT = "logged_out"


@dataclass(frozen=True)
class Challenge:
    """Server-issued nonces for one login attempt."""
    challenge: str
    salt: str
    session_id: str = ""


def basic_authorization(username: str, secret: str) -> str:
    """Value of a Basic ``Authorization`` header for ``username:secret``."""
    token = base64.b64encode(f"{username}:{secret}".encode("utf-8")).decode("ascii")
    return f"Basic {token}"


def _session_id_from(r: Response) -> str:
    # the server may set co_SId on more than one path; the last one wins
    sid = ""
    for cookie in r.cookies:
        if cookie.name == SESSION_COOKIE:
            sid = cookie.value or ""
    return sid


class AuthenticationClient:
    """
    Runs the login strategy selected by :class:`AuthMode`.

    Parameters
    ----------
    cfg : OgetConfig
        Connection configuration
    transport : HttpTransport, optional
        Shared transport; one is built from ``cfg`` when omitted
    hasher : KeyedSaltedHasher, optional
        Digest implementation for challenge mode (SHA-1 by default)

    Examples
    --------
    >>> client = AuthenticationClient(cfg)
    >>> sid = client.login(AuthMode.CHALLENGE, Credentials("odata", "odata"))
    >>> ...
    >>> client.logout()
    """

    def __init__(
        self,
        cfg: OgetConfig,
        transport: Optional[HttpTransport] = None,
        hasher: Optional[KeyedSaltedHasher] = None,
    ) -> None:
        self.cfg = cfg
        self.http = transport or HttpTransport(cfg)
        self.hasher = hasher or KeyedSaltedHasher()
        self.logger = logging.getLogger("oget.auth")

        self.state = AuthState.UNAUTHENTICATED
        self._session_id = ""

    @property
    def session_id(self) -> str:
        """Session id captured at login ("" for anonymous sessions)."""
        return self._session_id

    # ---------------- handshake steps ----------------

    def fetch_challenge(self, username: str) -> Challenge:
        """
        Request a challenge and salt for ``username``.

        Raises
        ------
        TransportError
            On network failure (step "challenge")
        """
        url = self.cfg.url("/$challenge")
        r = self.http.request("GET", url, step="challenge", headers={USERNAME_HEADER: username})
        challenge = Challenge(
            challenge=r.headers.get("Challenge", ""),
            salt=r.headers.get("Salt", ""),
            session_id=_session_id_from(r),
        )
        self.logger.debug(
            "Challenge received for %s (session %s)", username, mask_secret(challenge.session_id)
        )
        return challenge

    def login(self, mode: AuthMode, credentials: Credentials) -> str:
        """
        Authenticate and return the session id.

        Parameters
        ----------
        mode : AuthMode
            CHALLENGE (digest proof), BASIC (plain password) or NONE
        credentials : Credentials
            Username and password; ignored for NONE

        Returns
        -------
        str
            The ``co_SId`` cookie value, "" if the server issued none

        Raises
        ------
        AuthDenied
            Status 401
        AuthFailed
            Any other status except 200
        TransportError
            Network failure during the challenge or login request
        SessionStateError
            Called when not unauthenticated
        """
        if self.state is not AuthState.UNAUTHENTICATED:
            raise SessionStateError(f"Cannot log in while {self.state.value}", step="login")

        mode = AuthMode.parse(mode)
        headers: Dict[str, str] = {}
        pending_sid = ""

        if mode is AuthMode.CHALLENGE:
            self.logger.debug("Using Intrexx authentication")
            challenge = self.fetch_challenge(credentials.username)
            self.state = AuthState.CHALLENGE_ISSUED
            proof = self.hasher.proof(credentials.password, challenge.salt, challenge.challenge)
            headers["Authorization"] = basic_authorization(credentials.username, proof)
            pending_sid = challenge.session_id
        elif mode is AuthMode.BASIC:
            self.logger.debug("Using basic authentication")
            headers["Authorization"] = basic_authorization(credentials.username, credentials.password)
        else:
            self.logger.debug("Using anonymous authentication")

        if pending_sid:
            headers["Cookie"] = session_cookie(pending_sid)

        url = self.cfg.url("/")
        try:
            r = self.http.request("GET", url, step="login", headers=headers)
        except Exception:
            self.state = AuthState.UNAUTHENTICATED
            raise

        if r.status_code == 401:
            self.state = AuthState.UNAUTHENTICATED
            raise AuthDenied(url)
        if r.status_code != 200:
            self.state = AuthState.UNAUTHENTICATED
            raise AuthFailed(r.status_code, url)

        self._session_id = _session_id_from(r) or pending_sid
        self.state = AuthState.AUTHENTICATED
        self.logger.info("Established Intrexx session. ID: %s", mask_secret(self._session_id))
        return self._session_id

    def logout(self, session_id: Optional[str] = None) -> None:
        """
        End the session.

        No request is made when the session id is empty. Otherwise
        ``$logout`` is called once; the client is logged out afterwards even
        if the server reports an error.

        Raises
        ------
        LogoutReportedFailure
            Non-2xx status (teardown already done)
        TransportError
            Network failure (step "logout")
        """
        sid = self._session_id if session_id is None else session_id
        if not sid:
            self.state = AuthState.LOGGED_OUT
            return

        url = self.cfg.url("/$logout")
        try:
            r = self.http.request("GET", url, step="logout", headers={"Cookie": session_cookie(sid)})
        finally:
            self.state = AuthState.LOGGED_OUT
            self._session_id = ""

        if not 200 <= r.status_code < 300:
            self.logger.debug("Logout returned status %s", r.status_code)
            raise LogoutReportedFailure(r.status_code, url)
        self.logger.info("Intrexx session closed")
