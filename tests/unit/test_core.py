"""
Unit tests for the connection reader, the worker thread pool, and how the
server uses them to turn away connections it cannot serve.
"""

import socket
import threading
import time

import pytest

from hermes.config import ServerConfig
from hermes.core import Connection, RequestTooLarge, Task, ThreadPool
from hermes.server import HTTPServer


@pytest.fixture
def socket_pair():
    """A connected (server side, client side) socket pair."""
    server_side, client_side = socket.socketpair()
    yield server_side, client_side
    client_side.close()
    server_side.close()


def make_connection(sock: socket.socket, **kwargs) -> Connection:
    kwargs.setdefault("timeout", 2.0)
    return Connection(sock, ("127.0.0.1", 5000), **kwargs)


def read_all(sock: socket.socket) -> bytes:
    sock.settimeout(5.0)
    chunks = []
    while True:
        chunk = sock.recv(4096)
        if not chunk:
            return b"".join(chunks)
        chunks.append(chunk)


class TestConnection:
    """Tests for reading requests off a socket."""

    def test_reads_headers_and_body(self, socket_pair, sample_post_request: bytes):
        server_side, client_side = socket_pair
        conn = make_connection(server_side)

        client_side.sendall(sample_post_request)

        assert conn.read_request() == sample_post_request
        assert conn.requests_handled == 1

    def test_body_split_across_chunks(self, socket_pair, sample_post_request: bytes):
        server_side, client_side = socket_pair
        conn = make_connection(server_side, buffer_size=16)

        def send_slowly():
            for i in range(0, len(sample_post_request), 10):
                client_side.sendall(sample_post_request[i:i + 10])
                time.sleep(0.001)

        sender = threading.Thread(target=send_slowly)
        sender.start()
        data = conn.read_request()
        sender.join()

        assert data == sample_post_request

    def test_pipelined_requests(self, socket_pair, sample_get_request: bytes):
        server_side, client_side = socket_pair
        conn = make_connection(server_side)

        client_side.sendall(sample_get_request * 2)

        assert conn.read_request() == sample_get_request
        assert conn.read_request() == sample_get_request

    def test_peer_closed(self, socket_pair):
        server_side, client_side = socket_pair
        conn = make_connection(server_side)

        client_side.shutdown(socket.SHUT_WR)

        assert conn.read_request() is None

    def test_first_request_timeout(self, socket_pair):
        server_side, _ = socket_pair
        conn = make_connection(server_side, timeout=0.1)

        with pytest.raises(TimeoutError):
            conn.read_request()

    def test_idle_keep_alive_returns_none(self, socket_pair, sample_get_request: bytes):
        server_side, client_side = socket_pair
        conn = make_connection(server_side, keep_alive_timeout=0.1)

        client_side.sendall(sample_get_request)
        conn.read_request()

        assert conn.read_request() is None

    def test_request_too_large(self, socket_pair):
        server_side, client_side = socket_pair
        conn = make_connection(server_side, max_request_size=64)

        client_side.sendall(b"POST /post HTTP/1.1\r\nX-Padding: " + b"a" * 100 + b"\r\n\r\n")

        with pytest.raises(RequestTooLarge):
            conn.read_request()

    def test_send_and_close(self, socket_pair):
        server_side, client_side = socket_pair
        conn = make_connection(server_side)

        assert conn.send(b"HTTP/1.1 200 OK\r\n\r\n")
        client_side.shutdown(socket.SHUT_WR)
        conn.close()

        assert conn.closed
        assert client_side.recv(1024) == b"HTTP/1.1 200 OK\r\n\r\n"

    def test_context_manager_closes(self, socket_pair):
        server_side, client_side = socket_pair
        client_side.shutdown(socket.SHUT_WR)

        with make_connection(server_side) as conn:
            pass

        assert conn.closed


class TestTask:

    def test_expired_after_timeout(self):
        task = Task(print, timeout=0.01, queued_at=time.monotonic() - 1)

        assert task.expired

    def test_no_timeout_never_expires(self):
        assert not Task(print, queued_at=time.monotonic() - 3600).expired

    def test_expire_without_callback(self):
        Task(print).expire()


class TestThreadPool:
    """Tests for ThreadPool."""

    def test_runs_submitted_tasks(self):
        pool = ThreadPool(min_workers=2, max_workers=2, queue_size=10)
        pool.start()
        done = threading.Event()
        results = []

        def task(value):
            results.append(value)
            if len(results) == 3:
                done.set()

        try:
            for value in range(3):
                assert pool.submit(task, args=(value,))
            assert done.wait(timeout=5.0)
        finally:
            pool.shutdown(timeout=5.0)

        assert sorted(results) == [0, 1, 2]
        assert len(pool) == 0

    def test_submit_before_start(self):
        with pytest.raises(RuntimeError, match="not running"):
            ThreadPool().submit(print)

    def test_submit_after_shutdown(self):
        pool = ThreadPool(min_workers=1, max_workers=1)
        pool.start()
        pool.shutdown(timeout=1.0)

        with pytest.raises(RuntimeError, match="not running"):
            pool.submit(print)

    def test_full_queue_rejects(self):
        pool = ThreadPool(min_workers=1, max_workers=1, queue_size=1)
        pool.start()
        running = threading.Event()
        release = threading.Event()

        def blocker():
            running.set()
            release.wait(timeout=5.0)

        try:
            assert pool.submit(blocker)
            assert running.wait(timeout=5.0)
            assert pool.submit(blocker)       # waits in the queue
            assert not pool.submit(blocker)   # queue full
        finally:
            release.set()
            pool.shutdown(timeout=5.0)

    def test_failing_task_does_not_stop_worker(self, caplog):
        pool = ThreadPool(min_workers=1, max_workers=1, queue_size=10)
        pool.start()
        done = threading.Event()

        def broken():
            raise RuntimeError("boom")

        try:
            pool.submit(broken)
            pool.submit(done.set)
            assert done.wait(timeout=5.0)
            assert len(pool) == 1
        finally:
            pool.shutdown(timeout=5.0)

        assert any(r.exc_info and r.exc_info[0] is RuntimeError for r in caplog.records)

    def test_scales_up_when_busy(self):
        pool = ThreadPool(min_workers=1, max_workers=3, queue_size=10)
        pool.start()
        running = threading.Event()
        release = threading.Event()

        def blocker():
            running.set()
            release.wait(timeout=5.0)

        try:
            pool.submit(blocker)
            assert running.wait(timeout=5.0)
            pool.submit(blocker)
            assert len(pool) == 2
        finally:
            release.set()
            pool.shutdown(timeout=5.0)

    def test_task_waiting_too_long_is_expired_not_run(self):
        pool = ThreadPool(min_workers=1, max_workers=1, queue_size=10)
        pool.start()
        running = threading.Event()
        release = threading.Event()
        expired = threading.Event()
        ran = []

        def blocker():
            running.set()
            release.wait(timeout=5.0)

        try:
            pool.submit(blocker)
            assert running.wait(timeout=5.0)
            pool.submit(ran.append, args=(1,), timeout=0.05, on_expire=expired.set)
            time.sleep(0.1)
            release.set()
            assert expired.wait(timeout=5.0)
        finally:
            release.set()
            pool.shutdown(timeout=5.0)

        assert ran == []

    def test_shutdown_expires_abandoned_tasks(self):
        pool = ThreadPool(min_workers=1, max_workers=1, queue_size=10)
        pool.start()
        running = threading.Event()
        release = threading.Event()
        abandoned = []

        def blocker():
            running.set()
            release.wait(timeout=5.0)

        pool.submit(blocker)
        assert running.wait(timeout=5.0)
        pool.submit(print, on_expire=lambda: abandoned.append("queued"))

        threading.Timer(0.3, release.set).start()
        pool.shutdown(timeout=0.1)

        assert abandoned == ["queued"]


class TestServerRejectsUnservedConnections:
    """A connection that never reaches a worker still gets an answer."""

    @pytest.fixture
    def busy_server(self):
        server = HTTPServer(ServerConfig(
            port=0,
            min_workers=1,
            max_workers=1,
            queue_size=1,
            timeout=0.05,
        ))
        server._pool.start()
        running = threading.Event()
        release = threading.Event()

        def blocker():
            running.set()
            release.wait(timeout=5.0)

        server._pool.submit(blocker)
        assert running.wait(timeout=5.0)

        yield server, release

        release.set()
        server._pool.shutdown(timeout=5.0)

    def test_connection_expired_in_queue_gets_503(self, busy_server, socket_pair):
        server, release = busy_server
        server_side, client_side = socket_pair
        conn = make_connection(server_side)

        server._accept(conn)
        time.sleep(0.1)
        release.set()

        reply = read_all(client_side)
        assert reply.startswith(b"HTTP/1.1 503 Service Unavailable\r\n")
        assert b"Connection: close\r\n" in reply
        assert reply.endswith(b'{"error": "Server overloaded"}')
        assert conn.closed

    def test_connection_over_queue_limit_gets_503(self, busy_server, socket_pair):
        server, _ = busy_server
        server._pool.submit(print)             # fills the one queue slot
        server_side, client_side = socket_pair
        conn = make_connection(server_side)

        server._accept(conn)

        assert conn.closed
        assert read_all(client_side).startswith(b"HTTP/1.1 503 ")
