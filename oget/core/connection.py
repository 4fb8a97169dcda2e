"""
oget.core.connection - High-level connection management
========================================================

Login, any number of requests, logout: the whole Intrexx session lifecycle
behind one context manager.
"""

from __future__ import annotations

import logging
import os
from typing import Optional, Union

from requests import Response

from oget.core.auth import AuthenticationClient, AuthState
from oget.core.session import (
    AuthMode,
    ConfigError,
    Credentials,
    HttpTransport,
    LogoutReportedFailure,
    OgetConfig,
    OgetError,
    SessionStateError,
)
from oget.odata.dispatch import SessionedRequestDispatcher, with_format


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from None


class ConnectionContext:
    """
    High-level connection manager for Intrexx OData services.

    Every argument falls back to an ``OGET_*`` environment variable. Used
    as a context manager it logs in on entry and logs out on exit.

    Parameters
    ----------
    service_url : str, optional
        Service root URL. Falls back to OGET_SERVICE_URL env var.
    user : str, optional
        Username. Falls back to OGET_USER env var, then "odata".
    password : str, optional
        Password. Falls back to OGET_PASSWORD env var, then "odata".
    auth : str or AuthMode, optional
        "intrexx", "basic" or "none". Falls back to OGET_AUTH env var.
    verify : bool, optional
        SSL verification. Falls back to OGET_VERIFY_TLS env var.
    timeout : float, optional
        Request timeout in seconds. Falls back to OGET_TIMEOUT env var.
    retries : int, optional
        Connection retries. Falls back to OGET_RETRIES env var.

    Examples
    --------
    >>> with ConnectionContext("http://localhost:1337/odata.svc", "admin", "pwd") as conn:
    ...     r = conn.get("/Customers?$filter=Name eq 'x'", fmt="json")
    ...     print(r.text)
    """

    def __init__(
        self,
        service_url: Optional[str] = None,
        user: Optional[str] = None,
        password: Optional[str] = None,
        auth: Union[str, AuthMode, None] = None,
        verify: Optional[bool] = None,
        timeout: Optional[float] = None,
        retries: Optional[int] = None,
    ) -> None:
        if verify is None:
            verify = os.environ.get("OGET_VERIFY_TLS", "true").lower() != "false"
        if timeout is None:
            timeout = _env_float("OGET_TIMEOUT", 60.0)
        if retries is None:
            retries = int(_env_float("OGET_RETRIES", 0))

        self.cfg = OgetConfig(
            service_root=service_url or os.environ.get("OGET_SERVICE_URL", ""),
            auth_mode=AuthMode.parse(auth or os.environ.get("OGET_AUTH")),
            timeout=timeout,
            retries=retries,
            verify=verify,
        )
        self.credentials = Credentials(
            username=user if user is not None else os.environ.get("OGET_USER", "odata"),
            password=password if password is not None else os.environ.get("OGET_PASSWORD", "odata"),
        )
        self.logger = logging.getLogger("oget.connection")

        self.transport = HttpTransport(self.cfg)
        self.auth = AuthenticationClient(self.cfg, self.transport)
        self.dispatcher = SessionedRequestDispatcher(self.cfg, self.transport)

    @property
    def session_id(self) -> str:
        return self.auth.session_id

    def login(self) -> str:
        """Log in with the configured mode and credentials."""
        return self.auth.login(self.cfg.auth_mode, self.credentials)

    def get(self, entity_path: str, fmt: Optional[str] = None) -> Response:
        """
        GET a service-relative path such as "/Customers?$top=5".

        Parameters
        ----------
        entity_path : str
            Entity collection path with optional query string
        fmt : str, optional
            Appended as ``$format``
        """
        if self.auth.state is not AuthState.AUTHENTICATED:
            raise SessionStateError("Not logged in", step="dispatch")
        url = self.cfg.service_root + with_format(entity_path, fmt)
        return self.dispatcher.dispatch("GET", url, self.auth.session_id)

    def logout(self) -> None:
        self.auth.logout()

    def close(self) -> None:
        """Close the underlying transport."""
        self.transport.close()

    def __enter__(self) -> "ConnectionContext":
        try:
            self.login()
        except Exception:
            self.close()
            raise
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            self.logout()
        except LogoutReportedFailure as err:
            self.logger.warning("%s", err)
        except OgetError as err:
            if exc_type is None:
                raise
            # the error from the with-body takes precedence
            self.logger.warning("Logout after failure: %s", err)
        finally:
            self.close()

    @property
    def service_url(self) -> str:
        """The configured service root."""
        return self.cfg.service_root
