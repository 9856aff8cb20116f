#!/usr/bin/env python
"""
The ``WebDAV`` class is the public face of the library.  Every operation
takes the path, the account and the password, starts the request in the
background and returns an :class:`~filedav.io.handle.OperationHandle`.
The outcome is delivered to the completion callback exactly once, and is
also available through ``handle.result()``.

Failures are never raised, they are handed to the completion as
:class:`~filedav.lib.error.OperationError` values.  If the account or
the credentials are unusable the completion runs right away, on the
calling thread, with an ``InvalidCredentialsError`` and nothing is sent.

Example:

    client = WebDAV()
    account = SimpleAccount(username="bob", base_url="https://cloud.example.com/remote.php/dav/files/bob/")

    def listed(files, err):
        if err:
            print("listing failed:", err.kind)
        else:
            for f in files:
                print(f.path, f.size)

    client.list_files("/docs/", account, "secret", listed)
"""

import logging
import os
import sys
from types import TracebackType
from typing import Any, Callable, List, Mapping, Optional, Union

from filedav import __version__
from filedav.account import AccountIdentity, WebDAVAccount, resolve
from filedav.io.handle import OperationHandle
from filedav.io.transport import SessionManager
from filedav.io.trust import TrustEvaluator
from filedav.lib import error
from filedav.protocol.operations import WebDAVProtocol
from filedav.protocol.types import DAVRequest, FileRecord

if sys.version_info < (3, 11):
    from typing_extensions import Self
else:
    from typing import Self

log = logging.getLogger("filedav")

ListCompletion = Callable[[Optional[List[FileRecord]], Optional[error.OperationError]], None]
DataCompletion = Callable[[Optional[bytes], Optional[error.OperationError]], None]
StatusCompletion = Callable[[Optional[error.OperationError]], None]


class WebDAV:
    """
    WebDAV client for any number of accounts.  One transport session is
    kept per account; sessions are created on first use and live until
    discard_session() or close().
    """

    def __init__(
        self,
        timeout: Optional[float] = 30.0,
        ssl_verify_cert: Union[bool, str] = True,
        trust_evaluator: Optional[TrustEvaluator] = None,
        headers: Optional[Mapping[str, str]] = None,
        max_workers: Optional[int] = None,
        huge_tree: bool = False,
        session_factory: Optional[Callable[[], Any]] = None,
    ) -> None:
        """
        Args:
            timeout: request timeout in seconds
            ssl_verify_cert: verify TLS certificates; may be the path of a CA bundle
            trust_evaluator: callable deciding on server trust, see filedav.io.trust
            headers: extra headers for all requests
            max_workers: size of the worker pool
            huge_tree: enable XMLParser huge_tree for very large listings,
                beware of the security implications, see
                https://lxml.de/api/lxml.etree.XMLParser-class.html
            session_factory: returns a new niquests.Session (or look-alike)
        """
        self.headers = {"User-Agent": f"filedav/{__version__}"}
        self.headers.update(headers or {})
        self.huge_tree = huge_tree
        kwargs = {}
        if session_factory is not None:
            kwargs["session_factory"] = session_factory
        self.sessions = SessionManager(
            timeout=timeout,
            verify=ssl_verify_cert,
            trust_evaluator=trust_evaluator,
            max_workers=max_workers,
            **kwargs,
        )

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: Optional[type],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        self.close()

    def close(self) -> None:
        """Wait for running operations, then close all sessions."""
        self.sessions.close()

    def discard_session(self, account: WebDAVAccount, password: str) -> None:
        """Close the transport session of account, if there is one"""
        try:
            identity = resolve(account, password)
        except error.InvalidCredentialsError:
            return
        self.sessions.discard(identity)

    # ==================== Operations ====================

    def list_files(
        self,
        path: str,
        account: WebDAVAccount,
        password: str,
        completion: Optional[ListCompletion] = None,
    ) -> OperationHandle:
        """
        List the files and directories at path.

        The completion receives ``(files, error)``; files is a list of
        FileRecord in the order the server delivered them, typically with
        the listed directory itself first.  Responses the server sent
        without an href are left out.
        """

        def handle_response(protocol, response, transport_error, url):
            return protocol.parse_propfind(response, transport_error, url)

        return self._start(
            account,
            password,
            lambda protocol: protocol.propfind_request(path),
            handle_response,
            completion,
        )

    def upload(
        self,
        data: bytes,
        path: str,
        account: WebDAVAccount,
        password: str,
        completion: Optional[StatusCompletion] = None,
    ) -> OperationHandle:
        """
        Upload data to path (including file name).  The completion
        receives the error, or None on success.

        data that is not bytes-like is a programming error, not an
        operation failure: TypeError is raised right away and the
        completion is not called.
        """
        if not isinstance(data, (bytes, bytearray, memoryview)):
            raise TypeError(f"data must be bytes, not {type(data).__name__}")
        return self._start(
            account,
            password,
            lambda protocol: protocol.put_request(path, data),
            self._status_only,
            _status_completion(completion),
        )

    def upload_file(
        self,
        file: Union[str, "os.PathLike[str]"],
        path: str,
        account: WebDAVAccount,
        password: str,
        completion: Optional[StatusCompletion] = None,
    ) -> OperationHandle:
        """
        Upload the local file to path (including file name).  The file is
        streamed, not read into memory.  A file that can't be opened is
        reported as a network failure.
        """
        return self._start(
            account,
            password,
            lambda protocol: protocol.put_file_request(path, os.fspath(file)),
            self._status_only,
            _status_completion(completion),
        )

    def download(
        self,
        path: str,
        account: WebDAVAccount,
        password: str,
        completion: Optional[DataCompletion] = None,
    ) -> OperationHandle:
        """
        Download the file at path.  The completion receives
        ``(data, error)``.
        """

        def handle_response(protocol, response, transport_error, url):
            return protocol.parse_download(response, transport_error, url)

        return self._start(
            account,
            password,
            lambda protocol: protocol.get_request(path),
            handle_response,
            completion,
        )

    def create_folder(
        self,
        path: str,
        account: WebDAVAccount,
        password: str,
        completion: Optional[StatusCompletion] = None,
    ) -> OperationHandle:
        """
        Create a folder at path.  The parent has to exist, otherwise the
        server answers 409 and the completion gets a ConflictError.
        """
        return self._start(
            account,
            password,
            lambda protocol: protocol.mkcol_request(path),
            self._status_only,
            _status_completion(completion),
        )

    def delete_file(
        self,
        path: str,
        account: WebDAVAccount,
        password: str,
        completion: Optional[StatusCompletion] = None,
    ) -> OperationHandle:
        """Delete the file or folder at path."""
        return self._start(
            account,
            password,
            lambda protocol: protocol.delete_request(path),
            self._status_only,
            _status_completion(completion),
        )

    # ==================== Internals ====================

    @staticmethod
    def _status_only(protocol, response, transport_error, url):
        return None, protocol.parse_status(response, transport_error, url)

    def _start(
        self,
        account: WebDAVAccount,
        password: str,
        build: Callable[[WebDAVProtocol], DAVRequest],
        handle_response: Callable,
        completion: Optional[Callable[[Any, Optional[error.OperationError]], None]],
    ) -> OperationHandle:
        try:
            identity: AccountIdentity = resolve(account, password)
        except error.InvalidCredentialsError as e:
            log.debug(f"refusing to send request: {e.reason}")
            return OperationHandle.failed(e, completion)

        protocol = WebDAVProtocol(identity, password, self.headers, huge_tree=self.huge_tree)
        request = build(protocol)

        def handler(response, transport_error):
            return handle_response(protocol, response, transport_error, request.url)

        return self.sessions.execute(identity, request, handler, completion)


def _status_completion(
    completion: Optional[StatusCompletion],
) -> Optional[Callable[[Any, Optional[error.OperationError]], None]]:
    if completion is None:
        return None

    def deliver(value: Any, err: Optional[error.OperationError]) -> None:
        completion(err)

    return deliver
