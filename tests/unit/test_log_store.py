"""
Unit tests for the append-only log file.
"""

import os
from unittest import mock

import pytest

from aesdsocket.errors import StoreError
from aesdsocket.storage import LogStore


@pytest.fixture
def store(data_file) -> LogStore:
    return LogStore(str(data_file))


class TestAppend:
    """Tests for LogStore.append()."""

    def test_creates_file_lazily(self, store, data_file):
        assert not data_file.exists()

        store.append(b"hello\n")

        assert data_file.read_bytes() == b"hello\n"

    def test_appends_in_order(self, store, data_file):
        store.append(b"a\n")
        store.append(b"b\n")
        store.append(b"c\n")

        assert data_file.read_bytes() == b"a\nb\nc\n"

    def test_appends_to_existing_file(self, store, data_file):
        data_file.write_bytes(b"old\n")

        store.append(b"new\n")

        assert store.contents() == b"old\nnew\n"

    def test_retries_short_writes(self, store, data_file):
        real_write = os.write

        def one_byte_at_a_time(fd, data):
            return real_write(fd, bytes(data[:1]))

        with mock.patch("aesdsocket.storage.log_store.os.write", side_effect=one_byte_at_a_time):
            store.append(b"slow\n")

        assert data_file.read_bytes() == b"slow\n"

    def test_retries_interrupted_writes(self, store, data_file):
        real_write = os.write
        calls = []

        def interrupted_once(fd, data):
            calls.append(len(data))
            if len(calls) == 1:
                raise InterruptedError()
            return real_write(fd, data)

        with mock.patch("aesdsocket.storage.log_store.os.write", side_effect=interrupted_once):
            store.append(b"again\n")

        assert data_file.read_bytes() == b"again\n"
        assert len(calls) == 2

    def test_open_failure_raises_store_error(self, tmp_path):
        store = LogStore(str(tmp_path / "missing-dir" / "data"))

        with pytest.raises(StoreError) as exc_info:
            store.append(b"x\n")

        assert exc_info.value.operation == "open"

    def test_write_failure_raises_store_error(self, store):
        with mock.patch("aesdsocket.storage.log_store.os.write", side_effect=OSError(28, "No space left")):
            with pytest.raises(StoreError) as exc_info:
                store.append(b"x\n")

        assert exc_info.value.operation == "write"


class TestReadAll:
    """Tests for LogStore.read_all()."""

    def test_streams_in_chunks(self, data_file):
        store = LogStore(str(data_file), read_chunk_size=4)
        store.append(b"0123456789\n")
        chunks = []

        total = store.read_all(chunks.append)

        assert chunks == [b"0123", b"4567", b"89\n"]
        assert total == 11

    def test_missing_file_raises_store_error(self, store):
        with pytest.raises(StoreError) as exc_info:
            store.read_all(lambda chunk: None)

        assert exc_info.value.operation == "open"

    def test_sink_errors_propagate_unchanged(self, store):
        store.append(b"data\n")

        def broken_sink(chunk):
            raise BrokenPipeError("client went away")

        with pytest.raises(BrokenPipeError):
            store.read_all(broken_sink)

    def test_contents_of_missing_file_is_empty(self, store):
        assert store.contents() == b""


class TestRemove:
    """Tests for LogStore.remove()."""

    def test_removes_file(self, store, data_file):
        store.append(b"x\n")

        assert store.remove() is True
        assert not data_file.exists()

    def test_missing_file_is_success(self, store):
        assert store.remove() is False

    def test_other_failures_raise(self, store):
        with mock.patch("aesdsocket.storage.log_store.os.remove", side_effect=PermissionError(13, "denied")):
            with pytest.raises(StoreError):
                store.remove()

    def test_size_and_exists(self, store):
        assert store.size == 0
        assert not store.exists

        store.append(b"abc\n")

        assert store.size == 4
        assert store.exists
