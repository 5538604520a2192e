"""
Unit tests for the append-and-echo connection handler.

The handler is driven over a socketpair: the test writes the client's
bytes, half-closes, and then runs handle() to completion in the same
thread. Responses are small enough to sit in the socket buffer.
"""

import socket
from unittest import mock

import pytest

from aesdsocket.core.connection import Connection, ConnectionState
from aesdsocket.errors import StoreError
from aesdsocket.handlers import RecordEchoHandler
from aesdsocket.storage import LogStore


@pytest.fixture
def store(data_file) -> LogStore:
    return LogStore(str(data_file))


@pytest.fixture
def handler(store) -> RecordEchoHandler:
    return RecordEchoHandler(store)


@pytest.fixture
def socket_pair():
    server_side, client_side = socket.socketpair()
    yield server_side, client_side
    server_side.close()
    client_side.close()


def serve(handler, socket_pair, latch, *writes) -> bytes:
    """Send ``writes`` as a client, run the handler, return what came back."""
    server_side, client_side = socket_pair
    for data in writes:
        client_side.sendall(data)
    client_side.shutdown(socket.SHUT_WR)

    conn = Connection(socket=server_side, address=("127.0.0.1", 40000), latch=latch, poll_interval=0.05)
    handler.handle(conn)
    conn.close()

    client_side.settimeout(5.0)
    response = b""
    while True:
        chunk = client_side.recv(4096)
        if not chunk:
            return response
        response += chunk


class TestRecordEchoHandler:

    def test_single_record_is_stored_and_echoed(self, handler, store, socket_pair, latch):
        response = serve(handler, socket_pair, latch, b"hello\n")

        assert store.contents() == b"hello\n"
        assert response == b"hello\n"

    def test_each_record_echoes_whole_log(self, handler, store, socket_pair, latch):
        response = serve(handler, socket_pair, latch, b"hello\nworld\n")

        assert store.contents() == b"hello\nworld\n"
        assert response == b"hello\n" + b"hello\nworld\n"

    def test_record_split_across_writes(self, handler, store, socket_pair, latch):
        response = serve(handler, socket_pair, latch, b"hel", b"lo\nwor", b"ld\n")

        assert store.contents() == b"hello\nworld\n"
        assert response == b"hello\nhello\nworld\n"

    def test_unterminated_bytes_are_never_stored(self, handler, store, socket_pair, latch):
        response = serve(handler, socket_pair, latch, b"abc")

        assert response == b""
        assert not store.exists

    def test_trailing_partial_record_dropped(self, handler, store, socket_pair, latch):
        response = serve(handler, socket_pair, latch, b"one\ntwo")

        assert store.contents() == b"one\n"
        assert response == b"one\n"

    def test_echo_includes_earlier_records(self, handler, store, socket_pair, latch):
        store.append(b"a\n")

        response = serve(handler, socket_pair, latch, b"b\n")

        assert response == b"a\nb\n"

    def test_counts_records(self, handler, socket_pair, latch):
        server_side, client_side = socket_pair
        client_side.sendall(b"1\n2\n3\n")
        client_side.shutdown(socket.SHUT_WR)
        conn = Connection(socket=server_side, address=("127.0.0.1", 40000), latch=latch, poll_interval=0.05)

        handler.handle(conn)

        assert conn.records_handled == 3
        assert conn.state == ConnectionState.READING

    def test_append_failure_stops_processing(self, handler, store, socket_pair, latch):
        with mock.patch.object(store, "append", side_effect=StoreError("write", store.path)) as append:
            response = serve(handler, socket_pair, latch, b"a\nb\nc\n")

        assert append.call_count == 1
        assert response == b""

    def test_read_back_failure_stops_processing(self, handler, store, socket_pair, latch):
        with mock.patch.object(store, "read_all", side_effect=StoreError("read", store.path)):
            response = serve(handler, socket_pair, latch, b"a\nb\n")

        assert store.contents() == b"a\n"
        assert response == b""

    def test_socket_error_ends_connection_quietly(self, handler, store, latch):
        sock = mock.Mock()
        sock.recv.side_effect = ConnectionResetError()
        conn = Connection(socket=sock, address=("127.0.0.1", 40000), latch=latch)

        handler.handle(conn)  # must not raise

        assert not store.exists

    def test_send_error_ends_connection_quietly(self, handler, store, latch):
        sock = mock.Mock()
        sock.recv.side_effect = [b"x\ny\n", b""]
        sock.send.side_effect = BrokenPipeError()
        conn = Connection(socket=sock, address=("127.0.0.1", 40000), latch=latch)

        handler.handle(conn)

        assert store.contents() == b"x\n"

    def test_tripped_latch_stops_before_reading(self, handler, store, latch):
        latch.trip()
        sock = mock.Mock()
        conn = Connection(socket=sock, address=("127.0.0.1", 40000), latch=latch)

        handler.handle(conn)

        sock.recv.assert_not_called()
        assert not store.exists

    def test_shutdown_during_response_ends_connection_quietly(self, handler, store, latch):
        sock = mock.Mock()
        sock.recv.return_value = b"a\nb\n"

        def shutdown_while_sending(view):
            latch.trip()
            raise socket.timeout()

        sock.send.side_effect = shutdown_while_sending
        conn = Connection(socket=sock, address=("127.0.0.1", 40000), latch=latch, poll_interval=0.05)

        handler.handle(conn)  # must not raise

        assert store.contents() == b"a\n"
        assert sock.send.call_count == 1
        assert sock.recv.call_count == 1
