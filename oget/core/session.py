"""
oget.core.session - Configuration, errors and HTTP transport
=============================================================

Low-level pieces shared by the authentication client and the dispatcher:
- Immutable connection configuration and credentials
- The error taxonomy (every error names the step that failed)
- A thin requests wrapper with explicit timeout/retry settings that drains
  and releases every response before returning it
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from http.cookiejar import DefaultCookiePolicy
from typing import Dict, Optional, Union
from urllib.parse import urlsplit
import logging
import time

import requests
from requests import Response, Session
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry


SESSION_COOKIE = "co_SId"
USERNAME_HEADER = "rq_username"


# ---------------- errors ----------------

class OgetError(RuntimeError):
    """
    Base class for all errors raised by oget.

    Attributes
    ----------
    step : str
        The protocol step that failed: "config", "challenge", "login",
        "dispatch" or "logout".
    """

    step = "request"

    def __init__(self, message: str, *, step: Optional[str] = None) -> None:
        super().__init__(message)
        if step is not None:
            self.step = step


class ConfigError(OgetError, ValueError):
    """Missing or invalid configuration (service root, auth mode)."""

    step = "config"


class SessionStateError(OgetError):
    """Operation not allowed in the current authentication state."""


class TransportError(OgetError):
    """
    Network or I/O failure while talking to the service.

    Attributes
    ----------
    url : str
        The URL that was requested
    cause : Exception
        The underlying requests exception
    """

    def __init__(self, step: str, url: str, cause: BaseException) -> None:
        super().__init__(f"{step} request to {url} failed: {cause}", step=step)
        self.url = url
        self.cause = cause


class AuthDenied(OgetError):
    """The service answered the login request with 401."""

    step = "login"

    def __init__(self, url: str) -> None:
        super().__init__(f"Login denied (401) for {url}")
        self.status = 401
        self.url = url


class AuthFailed(OgetError):
    """The service answered the login request with a status other than 200/401."""

    step = "login"

    def __init__(self, status: int, url: str) -> None:
        super().__init__(f"Login failed with status {status} for {url}")
        self.status = status
        self.url = url


class LogoutReportedFailure(OgetError):
    """
    Logout returned a non-success status.

    Raised only after the response was released and the client moved to
    the logged-out state, so callers may treat it as a warning.
    """

    step = "logout"

    def __init__(self, status: int, url: str) -> None:
        super().__init__(f"Logout returned status {status} for {url}")
        self.status = status
        self.url = url


# ---------------- config ----------------

class AuthMode(str, Enum):
    """Login strategy executed by the authentication client."""

    NONE = "none"
    BASIC = "basic"
    CHALLENGE = "intrexx"

    @classmethod
    def parse(cls, value: Union[str, "AuthMode", None]) -> "AuthMode":
        """
        Parse an auth mode name.

        Accepts the enum itself, its value, and the aliases "challenge"
        and "anonymous". ``None`` or "" selects challenge mode.
        """
        if isinstance(value, AuthMode):
            return value
        name = (value or cls.CHALLENGE.value).strip().lower()
        aliases = {"challenge": cls.CHALLENGE, "anonymous": cls.NONE}
        if name in aliases:
            return aliases[name]
        try:
            return cls(name)
        except ValueError:
            raise ConfigError(
                f"Unknown auth mode {value!r} (expected intrexx, basic or none)"
            ) from None


@dataclass(frozen=True)
class Credentials:
    """
    Username and password, supplied once at start-up.

    The password is excluded from ``repr`` so it never ends up in logs.
    """
    username: str
    password: str = field(repr=False)


@dataclass(frozen=True)
class OgetConfig:
    """
    Connection configuration for an Intrexx OData service.

    Parameters
    ----------
    service_root : str
        Service endpoint root URL, e.g. "http://host:1337/service.svc".
        A trailing slash is removed.
    auth_mode : AuthMode
        Login strategy (default: challenge)
    timeout : float
        Request timeout in seconds (default: 60.0)
    retries : int
        Connection retry attempts (default: 0, no retry)
    backoff : float
        Backoff factor between retries (default: 0.5)
    verify : bool or str
        SSL verification (True, False, or path to CA bundle)
    user_agent : str
        User-Agent header value

    Examples
    --------
    >>> cfg = OgetConfig("http://localhost:1337/odata.svc/", AuthMode.BASIC)
    >>> cfg.service_root
    'http://localhost:1337/odata.svc'
    """
    service_root: str
    auth_mode: AuthMode = AuthMode.CHALLENGE
    timeout: float = 60.0
    retries: int = 0
    backoff: float = 0.5
    verify: Union[bool, str] = True
    user_agent: str = "oget/1.0"

    def __post_init__(self) -> None:
        root = (self.service_root or "").strip()
        if not root:
            raise ConfigError("No service URL provided")
        root = root.rstrip("/")
        parts = urlsplit(root)
        if parts.scheme not in ("http", "https") or not parts.netloc:
            raise ConfigError(f"Service URL must be an absolute http(s) URL: {root!r}")
        if self.retries < 0:
            raise ConfigError("retries must not be negative")
        # frozen: go through object.__setattr__ for normalized values
        object.__setattr__(self, "service_root", root)
        object.__setattr__(self, "auth_mode", AuthMode.parse(self.auth_mode))

    @property
    def origin(self) -> str:
        """Scheme and network location of the service root."""
        parts = urlsplit(self.service_root)
        return f"{parts.scheme}://{parts.netloc}"

    def url(self, path: str = "/") -> str:
        """Join a service-relative path such as "/$logout" onto the root."""
        return self.service_root + path


def mask_secret(value: Optional[str]) -> str:
    """Shorten a session id or token for log output."""
    if not value:
        return "<none>"
    if len(value) <= 4:
        return "****"
    return value[:4] + "..."


def session_cookie(session_id: str) -> str:
    return f"{SESSION_COOKIE}={session_id}"


# ---------------- transport ----------------

class HttpTransport:
    """
    Sequential HTTP transport for oget.

    Wraps a ``requests.Session`` configured from an :class:`OgetConfig`.
    Every call reads the full body and releases the connection before the
    response is handed back, so no two requests ever overlap. The session
    cookie jar is disabled: the ``co_SId`` value is passed explicitly.

    Parameters
    ----------
    cfg : OgetConfig
        Connection configuration

    Examples
    --------
    >>> with HttpTransport(cfg) as http:
    ...     r = http.request("GET", cfg.url("/"), step="login")
    """

    def __init__(self, cfg: OgetConfig) -> None:
        self.cfg = cfg
        self.timeout = float(cfg.timeout)
        self.verify = cfg.verify
        self.logger = logging.getLogger("oget.http")

        self.session = self._build_session()

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self.session.close()

    def __enter__(self) -> "HttpTransport":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _build_session(self) -> Session:
        sess = requests.Session()
        sess.cookies.set_policy(DefaultCookiePolicy(allowed_domains=[]))
        sess.headers.update({"User-Agent": self.cfg.user_agent})

        retry = Retry(
            total=self.cfg.retries,
            connect=self.cfg.retries,
            read=0,
            status=0,
            backoff_factor=self.cfg.backoff,
            allowed_methods=frozenset({"GET"}),
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry)
        sess.mount("https://", adapter)
        sess.mount("http://", adapter)
        return sess

    def request(
        self,
        method: str,
        url: str,
        *,
        step: str,
        headers: Optional[Dict[str, str]] = None,
        opaque: bool = False,
    ) -> Response:
        """
        Send one request and return the drained, released response.

        Parameters
        ----------
        method : str
            HTTP method
        url : str
            Absolute request URL
        step : str
            Protocol step name, used in errors and logs
        headers : dict, optional
            Extra request headers
        opaque : bool
            Send ``url`` exactly as given, bypassing requests' URL
            re-quoting (needed for OData key predicates and filters)

        Raises
        ------
        TransportError
            On any connection or I/O failure
        """
        req = requests.Request(method=method.upper(), url=url, headers=headers or {})
        t0 = time.perf_counter()
        try:
            prep = self.session.prepare_request(req)
            if opaque:
                prep.url = url
            settings = self.session.merge_environment_settings(
                prep.url, {}, False, self.verify, None
            )
            r = self.session.send(prep, timeout=self.timeout, **settings)
            try:
                _ = r.content
            finally:
                r.close()
        except requests.RequestException as exc:
            self.logger.debug("%s %s failed: %s", method.upper(), url, exc)
            raise TransportError(step, url, exc) from exc
        dt = (time.perf_counter() - t0) * 1000.0
        self.logger.debug("%s %s -> %s %sms", method.upper(), url, r.status_code, round(dt, 1))
        return r
