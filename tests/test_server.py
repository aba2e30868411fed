import threading

import pytest

import server as server_module
from client import SERVER_PORT
from connection import Connection
from server import EchoServer


def test_defaults_to_client_port():
    server = EchoServer()
    assert server.port == SERVER_PORT
    assert server.host == "0.0.0.0"


def test_echoes_every_message(start_server):
    server = start_server()
    conn = Connection.open(*server.address)
    try:
        for text in ["ping 0", "", "ação \x00 \U0001F600"]:
            conn.write_utf(text)
            assert conn.read_utf() == text
    finally:
        conn.close()


def test_custom_reply(start_server):
    server = start_server(respond=lambda text: text.upper())
    conn = Connection.open(*server.address)
    try:
        conn.write_utf("abc 1")
        assert conn.read_utf() == "ABC 1"
    finally:
        conn.close()


def test_clients_are_served_independently(start_server):
    server = start_server(respond=lambda text: f"{text}-ack")
    first = Connection.open(*server.address)
    second = Connection.open(*server.address)
    try:
        # the second client is answered while the first one is still connected
        second.write_utf("b 0")
        assert second.read_utf() == "b 0-ack"
        first.write_utf("a 0")
        assert first.read_utf() == "a 0-ack"
    finally:
        first.close()
        second.close()


def test_many_concurrent_clients(start_server):
    server = start_server()
    results = {}

    def _client(n):
        conn = Connection.open(*server.address)
        try:
            replies = []
            for i in range(3):
                conn.write_utf(f"c{n} {i}")
                replies.append(conn.read_utf())
            results[n] = replies
        finally:
            conn.close()

    threads = [threading.Thread(target=_client, args=(n,)) for n in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10)

    assert results == {n: [f"c{n} {i}" for i in range(3)] for n in range(8)}


def test_malformed_message_drops_only_that_client(start_server):
    server = start_server()
    bad = Connection.open(*server.address)
    bad.send(b"\x00\x01\xff")
    with pytest.raises(EOFError):
        bad.read_utf()
    bad.close()

    good = Connection.open(*server.address)
    try:
        good.write_utf("still here")
        assert good.read_utf() == "still here"
    finally:
        good.close()


def test_stop_closes_listener(start_server):
    server = start_server()
    address = server.address
    server.stop()
    server.stop()
    with pytest.raises(OSError):
        Connection.open(*address)


def test_main_parses_host(monkeypatch):
    created = []

    class RecordingServer:
        def __init__(self, host):
            created.append(host)

        def bind(self):
            pass

        def serve_forever(self):
            raise KeyboardInterrupt

        def stop(self):
            created.append("stopped")

    monkeypatch.setattr(server_module, "EchoServer", RecordingServer)
    server_module.main(["--host", "127.0.0.1"])
    assert created == ["127.0.0.1", "stopped"]


def test_stop_hangs_up_on_connected_clients(start_server):
    server = start_server()
    conn = Connection.open(*server.address)
    try:
        conn.write_utf("before stop")
        assert conn.read_utf() == "before stop"

        server.stop()

        with pytest.raises(EOFError):
            conn.read_utf()
    finally:
        conn.close()
