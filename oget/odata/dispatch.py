"""
oget.odata.dispatch - Session-bearing OData requests
=====================================================

Sends authenticated requests with the ``co_SId`` cookie. Request targets
are transmitted opaquely: the path and query are put on the wire as given
(spaces aside) so OData key predicates like ``Entity('a,b')`` and filters
like ``Name eq 'x'`` reach the server unescaped.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence
from urllib.parse import urlsplit
import logging

from requests import Response

from oget.core.session import HttpTransport, OgetConfig, mask_secret, session_cookie

# Segments dropped in front of the routed path: scheme and authority of an
# absolute URL, or the service/servlet prefix of a relative one.
ROUTING_PREFIX_SEGMENTS = 2


@dataclass(frozen=True)
class RequestTarget:
    """Path and optional query of one request, split at the last ``?``."""
    path: str
    query: Optional[str] = None


def split_target(raw_url: str) -> RequestTarget:
    """
    Split a raw URL at its last ``?``.

    Examples
    --------
    >>> split_target("/a/b/Entity?Name eq 'x'")
    RequestTarget(path='/a/b/Entity', query="Name eq 'x'")
    >>> split_target("/a/b/Entity")
    RequestTarget(path='/a/b/Entity', query=None)
    """
    path, sep, query = raw_url.rpartition("?")
    if not sep:
        return RequestTarget(raw_url)
    return RequestTarget(path, query)


def strip_routing_prefix(segments: Sequence[str], count: int = ROUTING_PREFIX_SEGMENTS) -> List[str]:
    """
    Drop leading segments up to and including the ``count``-th non-empty one.

    >>> strip_routing_prefix(["", "a", "b", "Entity"])
    ['Entity']
    >>> strip_routing_prefix(["http:", "", "host", "svc", "Entity"])
    ['svc', 'Entity']
    """
    seen = 0
    for i, segment in enumerate(segments):
        if seen == count:
            return list(segments[i:])
        if segment:
            seen += 1
    return []


def opaque_path(path: str) -> str:
    """Routed path of ``path``, always starting with ``/``."""
    return "/" + "/".join(strip_routing_prefix(path.split("/")))


def encode_query(query: str) -> str:
    """Escape spaces only; OData operators and quotes pass through."""
    return query.replace(" ", "%20")


def with_format(url: str, fmt: Optional[str]) -> str:
    """
    Append a ``$format`` system query option.

    >>> with_format("/Entity", "json")
    '/Entity?$format=json'
    >>> with_format("/Entity?$top=1", "json")
    '/Entity?$top=1&$format=json'
    """
    if not fmt:
        return url
    sep = "&" if "?" in url else "?"
    return f"{url}{sep}$format={fmt}"


class SessionedRequestDispatcher:
    """
    Issues requests carrying the Intrexx session cookie.

    Parameters
    ----------
    cfg : OgetConfig
        Connection configuration; supplies scheme and host for relative URLs
    transport : HttpTransport, optional
        Shared transport; one is built from ``cfg`` when omitted

    Examples
    --------
    >>> dispatcher = SessionedRequestDispatcher(cfg, transport)
    >>> r = dispatcher.dispatch("GET", cfg.url("/Customers?$top=5"), sid)
    >>> r.status_code, len(r.content)
    """

    def __init__(self, cfg: OgetConfig, transport: Optional[HttpTransport] = None) -> None:
        self.cfg = cfg
        self.http = transport or HttpTransport(cfg)
        self.logger = logging.getLogger("oget.odata")

    def build_url(self, raw_url: str) -> str:
        """Wire URL for ``raw_url``: origin + opaque path + encoded query."""
        target = split_target(raw_url)
        parts = urlsplit(target.path)
        if parts.scheme and parts.netloc:
            origin = f"{parts.scheme}://{parts.netloc}"
        else:
            origin = self.cfg.origin

        url = origin + opaque_path(target.path)
        if target.query:
            url += "?" + encode_query(target.query)
        return url

    def dispatch(self, method: str, raw_url: str, session_id: str) -> Response:
        """
        Send one request and return its fully read, released response.

        Parameters
        ----------
        method : str
            HTTP method, usually "GET"
        raw_url : str
            Absolute URL or path
        session_id : str
            Session id from login; no cookie is sent when empty

        Raises
        ------
        TransportError
            On network failure (step "dispatch")
        """
        url = self.build_url(raw_url)
        headers = {}
        if session_id:
            headers["Cookie"] = session_cookie(session_id)

        self.logger.debug("Request: %s (session %s)", raw_url, mask_secret(session_id))
        return self.http.request(method, url, step="dispatch", headers=headers, opaque=True)
