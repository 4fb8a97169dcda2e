"""
oget.cli - Command line interface
==================================

A minimalistic OData command line client for Intrexx provided OData
services.

Usage::

    oget --service-url http://host:1337/odata.svc --entity-path "/Customers?$top=5"
    cat paths.txt | oget --service-url http://host:1337/odata.svc --fmt json
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import IO, Iterable, List, Optional

from dotenv import load_dotenv
from requests import Response

from oget.core.connection import ConnectionContext
from oget.core.session import OgetError
from oget.odata.dispatch import with_format


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "false").lower() in ("1", "true", "yes")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="oget",
        description="Minimalistic OData command line interface for Intrexx OData services.",
    )
    p.add_argument(
        "--service-url", "--serviceUrl",
        dest="service_url",
        default=os.environ.get("OGET_SERVICE_URL", ""),
        help="The service endpoint root URL (e.g. http://host:port/servicename.svc).",
    )
    p.add_argument(
        "--entity-path", "--entityPath",
        dest="entity_path",
        default=os.environ.get("OGET_ENTITY_PATH", ""),
        help="The entity collection path with optional query string "
             "(e.g. /EntitySet?$filter=ID eq 1). Read from stdin when omitted.",
    )
    p.add_argument("--fmt", default=os.environ.get("OGET_FORMAT", ""), help="The format type.")
    p.add_argument(
        "--auth",
        default=os.environ.get("OGET_AUTH", "intrexx"),
        help="The auth type: intrexx, basic or none.",
    )
    p.add_argument("--user", default=os.environ.get("OGET_USER", "odata"), help="The username.")
    p.add_argument("--pwd", default=os.environ.get("OGET_PASSWORD", "odata"), help="The password.")
    p.add_argument(
        "--dump-header", "--dumpHeader",
        dest="dump_header",
        action="store_true",
        default=_env_flag("OGET_DUMP_HEADER"),
        help="Dump response headers.",
    )
    p.add_argument(
        "--verbose", "-v",
        action="store_true",
        default=_env_flag("OGET_VERBOSE"),
        help="Print verbose log messages.",
    )
    return p


def setup_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def format_response_head(r: Response) -> str:
    """Status line and headers, in HTTP wire form."""
    lines = [f"HTTP/1.1 {r.status_code} {r.reason or ''}".rstrip()]
    lines.extend(f"{name}: {value}" for name, value in r.headers.items())
    return "\r\n".join(lines) + "\r\n\r\n"


def iter_paths(stream: IO[str]) -> Iterable[str]:
    """Non-empty request paths, one per line."""
    for line in stream:
        path = line.strip()
        if path:
            yield path


def print_response(out: IO[str], url: str, r: Response, dump_header: bool) -> None:
    out.write(f"GET {url}\n")
    if dump_header:
        out.write(format_response_head(r))
    out.write(r.content.decode(r.encoding or "utf-8", errors="replace"))
    out.write("\n\n")


def run(args: argparse.Namespace, stdin: IO[str], stdout: IO[str]) -> int:
    conn = ConnectionContext(
        service_url=args.service_url,
        user=args.user,
        password=args.pwd,
        auth=args.auth,
    )
    with conn:
        paths = [args.entity_path] if args.entity_path else iter_paths(stdin)
        for path in paths:
            r = conn.get(path, fmt=args.fmt or None)
            url = conn.service_url + with_format(path, args.fmt or None)
            print_response(stdout, url, r, args.dump_header)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)

    try:
        return run(args, sys.stdin, sys.stdout)
    except OgetError as err:
        print(f"error: {err.step} failed: {err}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
