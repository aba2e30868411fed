import socket
import threading

import pytest

from connection import Connection
from server import EchoServer


@pytest.fixture
def start_server():
    """Start an EchoServer on an ephemeral loopback port; stopped after the test."""
    servers = []

    def _start(respond=None):
        server = EchoServer("127.0.0.1", 0, respond=respond)
        server.start()
        servers.append(server)
        return server

    yield _start
    for server in servers:
        server.stop()


@pytest.fixture
def serve_once():
    """Accept a single client and hand its Connection to *handler*, then close it."""
    listeners = []
    threads = []

    def _serve(handler):
        listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        listener.bind(("127.0.0.1", 0))
        listener.listen()
        listeners.append(listener)

        def _run():
            sock, _ = listener.accept()
            conn = Connection(sock)
            try:
                handler(conn)
            finally:
                conn.close()

        thread = threading.Thread(target=_run, daemon=True)
        thread.start()
        threads.append(thread)
        return listener.getsockname()

    yield _serve
    for thread in threads:
        thread.join(timeout=5)
    for listener in listeners:
        listener.close()


@pytest.fixture
def socket_pair():
    a, b = socket.socketpair()
    yield a, b
    a.close()
    b.close()
