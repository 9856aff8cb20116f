"""
Tests for the public WebDAV client.

Rule: None of the tests in this file should initiate any internet
communication.  The niquests session is replaced by a MagicMock
through the session_factory parameter.
"""

import base64
import threading
from unittest.mock import MagicMock

import niquests
import pytest

from filedav import FileRecord, SimpleAccount, WebDAV
from filedav.lib import error
from filedav.lib.error import ErrorKind
from filedav.protocol import PROPFIND_BODY

ACCOUNT = SimpleAccount(username="bob", base_url="https://cloud.example.com/remote.php/dav/files/bob/")
PASSWORD = "secret"

DOCS_LISTING = b"""<?xml version="1.0"?>
<d:multistatus xmlns:d="DAV:" xmlns:oc="http://owncloud.org/ns" xmlns:nc="http://nextcloud.org/ns">
  <d:response>
    <d:href>/docs/</d:href>
    <d:propstat>
      <d:prop><oc:fileid>1</oc:fileid></d:prop>
      <d:status>HTTP/1.1 200 OK</d:status>
    </d:propstat>
  </d:response>
  <d:response>
    <d:href>/docs/a.txt</d:href>
    <d:propstat>
      <d:prop>
        <d:getetag>"abc"</d:getetag>
        <oc:size>42</oc:size>
      </d:prop>
      <d:status>HTTP/1.1 200 OK</d:status>
    </d:propstat>
  </d:response>
</d:multistatus>
"""


def create_mock_response(content: bytes = b"", status_code: int = 200, reason: str = "OK") -> MagicMock:
    resp = MagicMock()
    resp.content = content
    resp.status_code = status_code
    resp.reason = reason
    resp.headers = {}
    return resp


class Recorder:
    """Collects completion calls and lets the test wait for them"""

    def __init__(self):
        self.calls = []
        self.event = threading.Event()

    def __call__(self, *args):
        self.calls.append(args)
        self.event.set()

    def wait(self):
        assert self.event.wait(5)
        return self.calls


@pytest.fixture
def session():
    return MagicMock()


@pytest.fixture
def client(session):
    with WebDAV(session_factory=lambda: session, max_workers=2) as client:
        yield client


def _sent(session):
    """method, url and headers of the single request sent"""
    session.request.assert_called_once()
    args, kwargs = session.request.call_args
    return args[0], args[1], kwargs


class TestListFiles:
    def test_listing(self, client, session):
        session.request.return_value = create_mock_response(DOCS_LISTING, 207, "Multi-Status")
        done = Recorder()
        handle = client.list_files("/docs/", ACCOUNT, PASSWORD, done)
        files, err = handle.result(timeout=5)

        assert err is None
        assert done.wait() == [(files, None)]
        assert files == [
            FileRecord(path="/docs/", is_directory=True, file_id="1"),
            FileRecord(path="/docs/a.txt", etag="abc", size=42),
        ]

        method, url, kwargs = _sent(session)
        assert method == "PROPFIND"
        assert url == "https://cloud.example.com/remote.php/dav/files/bob/docs/"
        assert kwargs["data"] == PROPFIND_BODY
        assert "Depth" not in kwargs["headers"]
        assert kwargs["headers"]["User-Agent"].startswith("filedav/")

    def test_unreadable_listing(self, client, session):
        session.request.return_value = create_mock_response(b"\xff\xfe\xfd", 207)
        files, err = client.list_files("/", ACCOUNT, PASSWORD).result(timeout=5)
        assert files is None
        assert err.kind == ErrorKind.RESPONSE_UNREADABLE

    def test_garbage_listing_is_empty(self, client, session):
        session.request.return_value = create_mock_response(b"<html>oops</html>", 200)
        assert client.list_files("/", ACCOUNT, PASSWORD).result(timeout=5) == ([], None)


class TestOtherOperations:
    def test_upload(self, client, session):
        session.request.return_value = create_mock_response(status_code=201, reason="Created")
        done = Recorder()
        client.upload(b"hello", "/docs/b.txt", ACCOUNT, PASSWORD, done)
        assert done.wait() == [(None,)]
        method, url, kwargs = _sent(session)
        assert method == "PUT"
        assert url.endswith("/bob/docs/b.txt")
        assert kwargs["data"] == b"hello"

    def test_upload_rejects_str(self, client, session):
        done = Recorder()
        with pytest.raises(TypeError):
            client.upload("hello", "/docs/b.txt", ACCOUNT, PASSWORD, done)
        session.request.assert_not_called()
        assert done.calls == []

    def test_upload_file(self, client, session, tmp_path):
        local = tmp_path / "local.txt"
        local.write_bytes(b"from disk")
        received = {}

        def request(method, url, data=None, **kwargs):
            received["data"] = data.read()
            return create_mock_response(status_code=204)

        session.request.side_effect = request
        done = Recorder()
        client.upload_file(local, "/docs/c.txt", ACCOUNT, PASSWORD, done)
        assert done.wait() == [(None,)]
        assert received["data"] == b"from disk"

    def test_upload_missing_file(self, client, session, tmp_path):
        done = Recorder()
        client.upload_file(tmp_path / "nope", "/x", ACCOUNT, PASSWORD, done)
        (err,), = done.wait()
        assert err.kind == ErrorKind.NETWORK_FAILURE
        session.request.assert_not_called()

    def test_download(self, client, session):
        session.request.return_value = create_mock_response(b"\x00binary\xff")
        done = Recorder()
        client.download("/docs/a.bin", ACCOUNT, PASSWORD, done)
        assert done.wait() == [(b"\x00binary\xff", None)]
        assert _sent(session)[0] == "GET"

    def test_download_not_found(self, client, session):
        session.request.return_value = create_mock_response(b"<error/>", 404, "Not Found")
        data, err = client.download("/gone", ACCOUNT, PASSWORD).result(timeout=5)
        assert data is None
        assert err.kind == ErrorKind.NOT_FOUND
        assert err.status == 404

    def test_create_folder(self, client, session):
        session.request.return_value = create_mock_response(status_code=201)
        done = Recorder()
        client.create_folder("/docs/new/", ACCOUNT, PASSWORD, done)
        assert done.wait() == [(None,)]
        method, url, _ = _sent(session)
        assert method == "MKCOL"
        assert url.endswith("/bob/docs/new/")

    def test_create_folder_without_parent(self, client, session):
        session.request.return_value = create_mock_response(status_code=409, reason="Conflict")
        done = Recorder()
        client.create_folder("/missing/new/", ACCOUNT, PASSWORD, done)
        (err,), = done.wait()
        assert err.kind == ErrorKind.CONFLICT

    def test_delete(self, client, session):
        session.request.return_value = create_mock_response(status_code=204)
        done = Recorder()
        client.delete_file("/docs/a.txt", ACCOUNT, PASSWORD, done)
        assert done.wait() == [(None,)]
        assert _sent(session)[0] == "DELETE"

    def test_network_failure(self, client, session):
        session.request.side_effect = niquests.exceptions.Timeout("too slow")
        done = Recorder()
        client.delete_file("/docs/a.txt", ACCOUNT, PASSWORD, done)
        (err,), = done.wait()
        assert isinstance(err, error.NetworkError)
        assert not err.cancelled


class TestErrorsForAllOperations:
    def _run_all(self, client):
        handles = [
            client.list_files("/", ACCOUNT, PASSWORD),
            client.upload(b"x", "/x", ACCOUNT, PASSWORD),
            client.download("/x", ACCOUNT, PASSWORD),
            client.create_folder("/d/", ACCOUNT, PASSWORD),
            client.delete_file("/x", ACCOUNT, PASSWORD),
        ]
        return [h.result(timeout=5)[1] for h in handles]

    def test_unauthorized_everywhere(self, client, session):
        session.request.return_value = create_mock_response(b"", 401, "Unauthorized")
        errors = self._run_all(client)
        assert [e.kind for e in errors] == [ErrorKind.UNAUTHORIZED] * 5

    def test_insufficient_storage_on_upload(self, client, session):
        session.request.return_value = create_mock_response(b"", 507, "Insufficient Storage")
        _, err = client.upload(b"big", "/big.bin", ACCOUNT, PASSWORD).result(timeout=5)
        assert isinstance(err, error.InsufficientStorageError)
        assert err.status == 507


class TestInvalidCredentials:
    @pytest.mark.parametrize(
        "account,password",
        [
            (SimpleAccount(username="bob", base_url="not a url"), PASSWORD),
            (SimpleAccount(username="bob"), PASSWORD),
            (SimpleAccount(username=None, base_url="https://example.com/"), PASSWORD),
            (ACCOUNT, "\udcff"),
        ],
    )
    def test_synchronous_failure_without_network(self, client, session, account, password):
        caller = threading.current_thread()
        seen = []

        def completion(*args):
            seen.append((threading.current_thread(), args))

        operations = [
            lambda: client.list_files("/", account, password, completion),
            lambda: client.upload(b"x", "/x", account, password, completion),
            lambda: client.upload_file("/etc/hostname", "/x", account, password, completion),
            lambda: client.download("/x", account, password, completion),
            lambda: client.create_folder("/d/", account, password, completion),
            lambda: client.delete_file("/x", account, password, completion),
        ]
        for operation in operations:
            before = len(seen)
            handle = operation()
            ## completion already ran, on this thread
            assert len(seen) == before + 1
            assert handle.done()
            assert not handle.cancel()

        assert all(thread is caller for thread, _ in seen)
        for _, args in seen:
            err = args[-1]
            assert err.kind == ErrorKind.INVALID_CREDENTIALS
            assert all(a is None for a in args[:-1])
        session.request.assert_not_called()


class TestSessions:
    def test_authorization_per_account(self):
        sessions = []

        def factory():
            s = MagicMock()
            s.request.return_value = create_mock_response(status_code=204)
            sessions.append(s)
            return s

        alice = SimpleAccount(username="alice", base_url="https://cloud.example.com/remote.php/dav/files/alice/")
        with WebDAV(session_factory=factory) as client:
            client.delete_file("/a", ACCOUNT, "pw-bob").result(timeout=5)
            client.delete_file("/b", ACCOUNT, "pw-bob").result(timeout=5)
            client.delete_file("/c", alice, "pw-alice").result(timeout=5)

        assert len(sessions) == 2
        bob_session, alice_session = sessions
        assert bob_session.request.call_count == 2
        auth = alice_session.request.call_args.kwargs["headers"]["Authorization"]
        assert base64.b64decode(auth.split()[1]) == b"alice:pw-alice"

    def test_discard_session(self):
        sessions = []

        def factory():
            sessions.append(MagicMock())
            return sessions[-1]

        with WebDAV(session_factory=factory) as client:
            client.delete_file("/a", ACCOUNT, PASSWORD).result(timeout=5)
            client.discard_session(ACCOUNT, PASSWORD)
            sessions[0].close.assert_called_once()
            client.discard_session(SimpleAccount(username="bob"), PASSWORD)

    def test_cancel_operation(self, session):
        release = threading.Event()
        started = threading.Event()

        def slow(*args, **kwargs):
            started.set()
            release.wait(5)
            return create_mock_response(b"data")

        session.request.side_effect = slow
        done = Recorder()
        client = WebDAV(session_factory=lambda: session)
        handle = client.download("/slow", ACCOUNT, PASSWORD, done)
        assert started.wait(5)
        handle.cancel()
        release.set()
        client.close()
        assert len(done.calls) == 1
        data, err = done.calls[0]
        assert data is None
        assert isinstance(err, error.CancelledError)
