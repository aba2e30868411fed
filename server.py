"""
Echo server for the echo client: answers every message with exactly one
message on the same connection, one thread per client.

Usage:
  python server.py [--host HOST]
"""

from __future__ import annotations

import argparse
import logging
import socket
import threading
from typing import Callable, Tuple

from client import SERVER_PORT
from connection import Connection
from message import UTFDataFormatError

log = logging.getLogger(__name__)


class EchoServer:
    """Listens for clients and replies to each message with ``respond(message)``."""

    def __init__(self, host: str = "0.0.0.0", port: int = SERVER_PORT,
                 respond: Callable[[str], str] | None = None):
        self.host = host
        self.port = port
        self.respond = respond or (lambda text: text)
        self._sock: socket.socket | None = None
        self._running = False
        self._thread: threading.Thread | None = None
        self._clients: set[Connection] = set()
        self._clients_lock = threading.Lock()

    # ------------------------------------------------------------------  listener
    def bind(self):
        self._sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self._sock.bind((self.host, self.port))
        self._sock.listen()
        self._running = True

    @property
    def address(self) -> Tuple[str, int]:
        return self._sock.getsockname()

    def serve_forever(self):
        while self._running:
            try:
                client_sock, addr = self._sock.accept()
            except OSError:
                # listener closed by stop()
                if not self._running:
                    break
                raise
            log.info("client connected: %s:%d", *addr)
            conn = Connection(client_sock)
            with self._clients_lock:
                self._clients.add(conn)
            threading.Thread(target=self._serve_client, args=(conn,), daemon=True).start()

    def start(self):
        self.bind()
        self._thread = threading.Thread(target=self.serve_forever, daemon=True)
        self._thread.start()

    def stop(self):
        """Stop accepting and hang up on every connected client."""
        if not self._running:
            return
        self._running = False
        try:
            # wake accept() up; some platforms do not on close() alone
            self._sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
        self._sock.close()
        if self._thread is not None:
            self._thread.join()

        # each client thread sees EOF and closes its own connection
        with self._clients_lock:
            for conn in self._clients:
                try:
                    conn.shutdown()
                except OSError as exc:
                    log.warning("shutdown %s: %s", conn.remote_addr, exc)

    # ------------------------------------------------------------------  per client
    def _serve_client(self, conn: Connection):
        try:
            while True:
                data = conn.read_utf()
                conn.write_utf(self.respond(data))
        except EOFError:
            log.info("client %s disconnected", conn.remote_addr)
        except (OSError, UTFDataFormatError) as exc:
            log.warning("client %s: %s", conn.remote_addr, exc)
        finally:
            with self._clients_lock:
                self._clients.discard(conn)
            try:
                conn.close()
            except OSError as exc:
                log.warning("close %s: %s", conn.remote_addr, exc)


# ---------------------------------------------------------------------------  entry-point
def main(argv=None):
    parser = argparse.ArgumentParser(description="TCP echo server")
    parser.add_argument("--host", default="0.0.0.0", help="address to listen on")
    parser.add_argument("-v", "--verbose", action="store_true", help="log wire traffic to stderr")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="%(asctime)s [%(levelname)s] %(message)s",
                        datefmt="%H:%M:%S")

    server = EchoServer(args.host)
    server.bind()
    print(f"[server] Listening on port {SERVER_PORT} …")
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        server.stop()


if __name__ == "__main__":
    main()
