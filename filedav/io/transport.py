"""
Transport sessions, one per account, and the worker pool executing requests.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from http.cookiejar import DefaultCookiePolicy
from types import TracebackType
from typing import Any, Callable, Dict, Optional, Tuple, Union

import niquests

from filedav.account import AccountIdentity
from filedav.lib import error
from filedav.lib.url import URL
from filedav.protocol.types import DAVRequest, DAVResponse

from .handle import OperationHandle
from .trust import TrustDecision, TrustEvaluator, probe_server_trust

log = logging.getLogger(__name__)

ResponseHandler = Callable[
    [Optional[DAVResponse], Optional[BaseException]],
    Tuple[Any, Optional[error.OperationError]],
]


class TransportSession:
    """
    Thin wrapper around a niquests Session for one account.

    The session is isolated: it accepts no cookies, ignores netrc and
    proxy settings from the environment, and keeps its own connection
    pool and server trust decisions.  It may be used from several
    worker threads at once; nothing request specific is stored on it.
    """

    def __init__(
        self,
        session: niquests.Session,
        timeout: Optional[float] = 30.0,
        verify: Union[bool, str] = True,
        trust_evaluator: Optional[TrustEvaluator] = None,
    ) -> None:
        """
        Args:
            session: the niquests Session to send requests through
            timeout: request timeout in seconds
            verify: verify TLS certificates (bool or CA bundle path)
            trust_evaluator: consulted before the first https request to a host
        """
        self.session = session
        ## Authorization is set explicitly on every request, netrc or
        ## environment auth must not replace it
        self.session.trust_env = False
        self.session.cookies.set_policy(DefaultCookiePolicy(allowed_domains=[]))
        self.timeout = timeout
        self.verify = verify
        self.trust_evaluator = trust_evaluator
        self._decisions: Dict[Tuple[str, int], TrustDecision] = {}
        self._lock = threading.Lock()

    def _verify_for(self, url: URL) -> Union[bool, str]:
        if self.trust_evaluator is None or url.scheme != "https":
            return self.verify
        key = (url.hostname, url.port or 443)
        with self._lock:
            decision = self._decisions.get(key)
        if decision is None:
            challenge = probe_server_trust(
                key[0], key[1], timeout=self.timeout or 10.0, verify=self.verify
            )
            decision = self.trust_evaluator(challenge)
            if not isinstance(decision, TrustDecision):
                error.weirdness("trust evaluator returned", decision)
                decision = TrustDecision.USE_DEFAULT
            log.debug(f"server trust for {key[0]}:{key[1]}: {decision.value}")
            with self._lock:
                decision = self._decisions.setdefault(key, decision)
        if decision is TrustDecision.REJECT:
            raise error.NetworkError(
                reason=f"server trust for {key[0]} rejected", url=str(url)
            )
        if decision is TrustDecision.ACCEPT:
            return False
        return self.verify

    def send(self, request: DAVRequest) -> DAVResponse:
        """
        Execute a DAVRequest and return DAVResponse.  Blocks; transport
        failures propagate as exceptions.
        """
        url = URL(request.url)
        verify = self._verify_for(url)
        log.debug(
            f"sending request - method={request.method.value}, url={url}, headers={request.redacted_headers()}"
        )
        if request.body_file is not None:
            with open(request.body_file, "rb") as body:
                r = self._request(request, body, verify)
        else:
            r = self._request(request, request.body, verify)
        log.debug(f"server responded with {r.status_code} {r.reason}")
        return DAVResponse(
            status=r.status_code,
            headers=dict(r.headers or {}),
            body=r.content or b"",
            reason=r.reason or "",
        )

    def _request(self, request: DAVRequest, data: Any, verify: Union[bool, str]):
        return self.session.request(
            request.method.value,
            request.url,
            data=data,
            headers=request.headers,
            timeout=self.timeout,
            verify=verify,
            allow_redirects=True,
        )

    def close(self) -> None:
        self.session.close()


def _raw_outcome(
    response: Optional[DAVResponse], transport_error: Optional[BaseException]
) -> Tuple[Any, Optional[error.OperationError]]:
    if response is not None:
        return response, None
    err = error.NetworkError(reason=str(transport_error))
    err.__cause__ = transport_error
    return None, err


class SessionManager:
    """
    Keeps one TransportSession per AccountIdentity and runs requests on
    a thread pool.

    Example:
        with SessionManager(timeout=10) as manager:
            handle = manager.execute(identity, request, completion=done)
    """

    def __init__(
        self,
        session_factory: Callable[[], niquests.Session] = niquests.Session,
        timeout: Optional[float] = 30.0,
        verify: Union[bool, str] = True,
        trust_evaluator: Optional[TrustEvaluator] = None,
        max_workers: Optional[int] = None,
    ) -> None:
        self.session_factory = session_factory
        self.timeout = timeout
        self.verify = verify
        self.trust_evaluator = trust_evaluator
        self._sessions: Dict[AccountIdentity, TransportSession] = {}
        self._lock = threading.Lock()
        self._closed = False
        self._local = threading.local()
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="filedav"
        )

    def session_for(self, identity: AccountIdentity) -> TransportSession:
        """
        The session of identity, created on first use.  Raises
        RuntimeError once the manager is closed.
        """
        with self._lock:
            if self._closed:
                raise RuntimeError("session manager is closed")
            session = self._sessions.get(identity)
            if session is None:
                log.debug(f"new transport session for {identity.username} at {identity.base_url}")
                session = TransportSession(
                    self.session_factory(),
                    timeout=self.timeout,
                    verify=self.verify,
                    trust_evaluator=self.trust_evaluator,
                )
                self._sessions[identity] = session
            return session

    def execute(
        self,
        identity: AccountIdentity,
        request: DAVRequest,
        handler: ResponseHandler = _raw_outcome,
        completion: Optional[Callable[[Any, Optional[error.OperationError]], None]] = None,
    ) -> OperationHandle:
        """
        Start request in the background and return a handle for it.

        handler runs on the worker thread and turns the raw outcome
        (response or transport exception) into ``(value, error)``, which
        is what the completion receives.
        """
        handle = OperationHandle(completion, url=request.url)
        try:
            session = self.session_for(identity)
            future = self._executor.submit(self._run, handle, session, request, handler)
        except RuntimeError as e:
            ## the manager has been closed
            err = error.NetworkError(reason="session manager is closed", url=request.url)
            err.__cause__ = e
            handle.resolve(None, err)
            return handle
        handle.attach(future)
        return handle

    def _run(
        self,
        handle: OperationHandle,
        session: TransportSession,
        request: DAVRequest,
        handler: ResponseHandler,
    ) -> None:
        if handle.done():
            return
        self._local.worker = True
        response: Optional[DAVResponse] = None
        transport_error: Optional[BaseException] = None
        try:
            response = session.send(request)
        except Exception as e:
            log.info(f"{request.method.value} {request.url} failed: {e}", exc_info=log.isEnabledFor(logging.DEBUG))
            transport_error = e

        if isinstance(transport_error, error.OperationError):
            outcome: Tuple[Any, Optional[error.OperationError]] = (None, transport_error)
        else:
            try:
                outcome = handler(response, transport_error)
            except Exception as e:
                log.error(f"handling the response to {request.url} failed", exc_info=True)
                err = error.ResponseUnreadableError(
                    reason=str(e), status=response.status if response else None, url=request.url
                )
                err.__cause__ = e
                outcome = (None, err)
        handle.resolve(*outcome)

    def discard(self, identity: AccountIdentity) -> None:
        """Close and forget the session of identity"""
        with self._lock:
            session = self._sessions.pop(identity, None)
        if session is not None:
            session.close()

    def close(self) -> None:
        """
        Close all sessions and stop the worker pool.  Waits for running
        operations, unless called from a completion on a worker thread.
        """
        with self._lock:
            self._closed = True
            sessions = list(self._sessions.values())
            self._sessions.clear()
        self._executor.shutdown(wait=not getattr(self._local, "worker", False))
        for session in sessions:
            session.close()

    def __enter__(self) -> "SessionManager":
        return self

    def __exit__(
        self,
        exc_type: Optional[type],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        self.close()
