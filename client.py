"""
Echo client: sends three tagged messages to the echo server and prints
every reply.

Usage:
  python client.py <tag> <host>
"""

from __future__ import annotations

import logging
import socket
import sys
from enum import Enum
from typing import Callable, List, NamedTuple

from connection import Connection
from message import UTFDataFormatError

SERVER_PORT = 7896  # server port, shared with server.py
EXCHANGES = 3       # request/reply pairs per run

log = logging.getLogger(__name__)


class FailureKind(Enum):
    # value is the prefix of the printed diagnostic line
    RESOLUTION = "Socket"
    EOF = "EOF"
    IO = "readline"
    CLOSE = "close"


class Failure(NamedTuple):
    kind: FailureKind
    message: str

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.message}"


# exceptions run() turns into diagnostics; anything else is a bug and propagates
HANDLED_ERRORS = (OSError, EOFError, UTFDataFormatError)


def classify(exc: BaseException) -> FailureKind:
    """Map a transport error to its failure kind, most specific first."""
    if isinstance(exc, socket.gaierror):
        return FailureKind.RESOLUTION
    if isinstance(exc, EOFError):
        return FailureKind.EOF
    return FailureKind.IO


def report(failure: Failure, out: Callable[[str], None] = print):
    out(str(failure))


def request_text(tag: str, index: int) -> str:
    return f"{tag} {index}"


def exchange(conn: Connection, tag: str, count: int = EXCHANGES,
             out: Callable[[str], None] = print) -> List[str]:
    """Send *count* requests, one at a time, printing each reply as it arrives."""
    replies = []
    for i in range(count):
        conn.write_utf(request_text(tag, i))
        data = conn.read_utf()
        out(f"Recebido: {data}")
        replies.append(data)
    return replies


def run(tag: str, host: str, port: int = SERVER_PORT,
        out: Callable[[str], None] = print) -> List[Failure]:
    """
    Connect to *host*, run the exchanges and close the connection on every
    path. Failures are printed (the original one first, then any close
    failure) and returned in the same order.
    """
    failures: List[Failure] = []
    conn = None
    try:
        conn = Connection.open(host, port)
        exchange(conn, tag, out=out)
    except HANDLED_ERRORS as exc:
        failure = Failure(classify(exc), str(exc))
        log.debug("exchange with %s:%d aborted: %r", host, port, exc)
        report(failure, out)
        failures.append(failure)
    finally:
        if conn is not None:
            try:
                conn.close()
            except OSError as exc:
                failure = Failure(FailureKind.CLOSE, str(exc))
                report(failure, out)
                failures.append(failure)
    return failures


# ---------------------------------------------------------------------------  entry-point
USAGE = "Usage:\n  python client.py <tag> <host>"


def main(argv: List[str] | None = None):
    # positional only: the tag is sent verbatim, even when it starts with "-"
    args = sys.argv[1:] if argv is None else argv
    if len(args) != 2:
        print(USAGE, file=sys.stderr)
        sys.exit(2)
    tag, host = args

    logging.basicConfig(level=logging.WARNING,
                        format="%(asctime)s [%(levelname)s] %(message)s",
                        datefmt="%H:%M:%S")

    run(tag, host)


if __name__ == "__main__":
    main()
