"""
Mapping of transport outcomes to results.

One table, shared by every operation.  Only the shape of the success
payload differs between operations.
"""

from typing import Any, Optional, Tuple

from filedav.lib import error

## status -> error class, for the statuses with a kind of their own
_error_by_status = {
    401: error.UnauthorizedError,
    403: error.ForbiddenError,
    404: error.NotFoundError,
    405: error.ConflictError,
    409: error.ConflictError,
    507: error.InsufficientStorageError,
}


def classify(
    status: Optional[int],
    transport_error: Optional[BaseException] = None,
    body: Optional[bytes] = None,
    require_text: bool = False,
    url: Optional[str] = None,
    reason: Optional[str] = None,
) -> Tuple[Any, Optional[error.OperationError]]:
    """
    Classify a raw outcome.

    Args:
        status: HTTP status code, None if the server never answered
        transport_error: exception raised by the transport, if any
        body: response body
        require_text: the caller needs the body as UTF-8 text
        url: request url, copied into the error
        reason: reason phrase from the server, copied into the error

    Returns:
        (payload, None) on success, where payload is the decoded text
        if require_text is set and the raw body otherwise, or
        (None, OperationError).

    A status, when present, wins over a transport error - some
    transports report both.
    """
    if status is None:
        err: error.OperationError = error.NetworkError(
            reason=str(transport_error) if transport_error else "no response", url=url
        )
        if transport_error is not None:
            err.__cause__ = transport_error
        return None, err

    if 200 <= status <= 299:
        if not require_text:
            return body, None
        try:
            return (body or b"").decode("utf-8"), None
        except UnicodeDecodeError as e:
            err = error.ResponseUnreadableError(
                reason="response body is not valid UTF-8", status=status, url=url
            )
            err.__cause__ = e
            return None, err

    cls = _error_by_status.get(status)
    if cls is None:
        if 500 <= status <= 599:
            cls = error.ServerError
        else:
            cls = error.UnknownStatusError
    return None, cls(reason=reason or None, status=status, url=url)
