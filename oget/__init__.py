"""
oget - Intrexx OData client
===========================

Authenticates against an Intrexx OData service (challenge, basic or
anonymous login) and issues session-cookie-authenticated requests.

Usage
-----
>>> from oget import ConnectionContext
>>>
>>> with ConnectionContext("http://localhost:1337/odata.svc", "admin", "secret") as conn:
...     r = conn.get("/Customers?$filter=Name eq 'Miller'", fmt="json")
...     print(r.status_code, r.text)

Lower-level pieces can be combined by hand:

>>> from oget import OgetConfig, Credentials, AuthMode, HttpTransport
>>> from oget import AuthenticationClient, SessionedRequestDispatcher
>>>
>>> cfg = OgetConfig("http://localhost:1337/odata.svc", AuthMode.CHALLENGE)
>>> with HttpTransport(cfg) as http:
...     auth = AuthenticationClient(cfg, http)
...     sid = auth.login(cfg.auth_mode, Credentials("admin", "secret"))
...     r = SessionedRequestDispatcher(cfg, http).dispatch("GET", cfg.url("/Customers"), sid)
...     auth.logout(sid)

Subpackages
-----------
- oget.core: configuration, keyed salted hashing, login handshake
- oget.odata: session-bearing request dispatch
- oget.cli: command line interface (``python -m oget``)

"""

__version__ = "1.0.0"

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
from oget.core.auth import AuthenticationClient
from oget.core.connection import ConnectionContext
from oget.odata import SessionedRequestDispatcher

__all__ = [
    # Version
    "__version__",
    # Config and errors
    "AuthMode",
    "Credentials",
    "OgetConfig",
    "OgetError",
    "ConfigError",
    "AuthDenied",
    "AuthFailed",
    "TransportError",
    "LogoutReportedFailure",
    "SessionStateError",
    # Core
    "HttpTransport",
    "KeyedSaltedHasher",
    "make_digest",
    "AuthenticationClient",
    "ConnectionContext",
    # OData
    "SessionedRequestDispatcher",
]
