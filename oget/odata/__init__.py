"""
oget.odata - Session-bearing OData requests
============================================

- SessionedRequestDispatcher: authenticated requests with opaque targets
- Helpers to split, rewrite and encode request targets

"""

from oget.odata.dispatch import (
    RequestTarget,
    SessionedRequestDispatcher,
    encode_query,
    opaque_path,
    split_target,
    strip_routing_prefix,
    with_format,
)

__all__ = [
    "RequestTarget",
    "SessionedRequestDispatcher",
    "encode_query",
    "opaque_path",
    "split_target",
    "strip_routing_prefix",
    "with_format",
]
