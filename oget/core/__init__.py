"""
oget.core - Configuration, authentication and connection handling
==================================================================

- OgetConfig / Credentials / AuthMode: immutable connection settings
- KeyedSaltedHasher: digest used by the Intrexx challenge login
- AuthenticationClient: challenge/login/logout handshake
- HttpTransport: requests wrapper with explicit timeout and retries
- ConnectionContext: login, requests and logout in one context manager

"""

from oget.core.session import (
    AuthDenied,
    AuthFailed,
    AuthMode,
    ConfigError,
    Credentials,
    HttpTransport,
    LogoutReportedFailure,
    OgetConfig,
    OgetError,
    SessionStateError,
    TransportError,
)
from oget.core.ksh import KeyedSaltedHasher, make_digest
from oget.core.auth import AuthenticationClient, AuthState, Challenge
from oget.core.connection import ConnectionContext

__all__ = [
    "AuthDenied",
    "AuthFailed",
    "AuthMode",
    "AuthState",
    "AuthenticationClient",
    "Challenge",
    "ConfigError",
    "ConnectionContext",
    "Credentials",
    "HttpTransport",
    "KeyedSaltedHasher",
    "LogoutReportedFailure",
    "OgetConfig",
    "OgetError",
    "SessionStateError",
    "TransportError",
    "make_digest",
]
