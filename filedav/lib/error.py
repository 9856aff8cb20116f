#!/usr/bin/env python
import logging
import os
from enum import Enum
from typing import Dict
from typing import Optional
from typing import Type

from filedav import __version__

## Environmental variables prepended with "PYTHON_FILEDAV" are used for debug purposes,
## environmental variables prepended with "FILEDAV_" are for connection parameters
## one of DEBUG_PDB, DEBUG, DEVELOPMENT, PRODUCTION
debugmode = os.environ.get("PYTHON_FILEDAV_DEBUGMODE")
if not debugmode:
    if "dev" in __version__:
        debugmode = "DEVELOPMENT"
    else:
        debugmode = "PRODUCTION"

log = logging.getLogger("filedav")
if debugmode.startswith("DEBUG"):
    log.setLevel(logging.DEBUG)
else:
    log.setLevel(logging.WARNING)


def weirdness(*reasons) -> None:
    """Log a deviation from what a well-behaved WebDAV server would deliver"""
    reason = " : ".join([str(x) for x in reasons])
    log.warning(f"Deviation from expectations found: {reason}")
    if debugmode == "DEBUG_PDB":
        log.error(f"Dropping into debugger due to {reason}")
        import pdb

        pdb.set_trace()


class ErrorKind(Enum):
    """The closed set of ways an operation may fail."""

    INVALID_CREDENTIALS = "invalid credentials"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not found"
    CONFLICT = "conflict"
    INSUFFICIENT_STORAGE = "insufficient storage"
    SERVER_ERROR = "server error"
    UNKNOWN_STATUS = "unknown status"
    NETWORK_FAILURE = "network failure"
    RESPONSE_UNREADABLE = "response unreadable"


class OperationError(Exception):
    """
    Base class for everything an operation may deliver to its
    completion instead of a result.  Instances are handed over as
    values; the public client never raises them.

    status will hold the HTTP status code when the server answered,
    url the request url when one was built.
    """

    kind: ErrorKind
    status: Optional[int] = None
    url: Optional[str] = None
    reason: str = "no reason"

    def __init__(
        self,
        reason: Optional[str] = None,
        status: Optional[int] = None,
        url: Optional[str] = None,
    ) -> None:
        super().__init__(reason or self.reason)
        if reason:
            self.reason = reason
        if status is not None:
            self.status = status
        if url:
            self.url = url

    def __str__(self) -> str:
        return "%s at '%s', status %s, reason %s" % (
            self.__class__.__name__,
            self.url,
            self.status,
            self.reason,
        )


class InvalidCredentialsError(OperationError):
    """
    The account could not be turned into a base URL, or the
    username/password pair can't be encoded for the Authorization
    header.  Never reaches the network.
    """

    kind = ErrorKind.INVALID_CREDENTIALS


class UnauthorizedError(OperationError):
    kind = ErrorKind.UNAUTHORIZED


class ForbiddenError(OperationError):
    kind = ErrorKind.FORBIDDEN


class NotFoundError(OperationError):
    kind = ErrorKind.NOT_FOUND


class ConflictError(OperationError):
    """405 or 409 - typically a missing parent collection or an
    existing resource in the way"""

    kind = ErrorKind.CONFLICT


class InsufficientStorageError(OperationError):
    kind = ErrorKind.INSUFFICIENT_STORAGE


class ServerError(OperationError):
    kind = ErrorKind.SERVER_ERROR


class UnknownStatusError(OperationError):
    kind = ErrorKind.UNKNOWN_STATUS


class NetworkError(OperationError):
    """
    No HTTP status was delivered.  The transport level exception, if
    any, is available as __cause__.
    """

    kind = ErrorKind.NETWORK_FAILURE
    cancelled: bool = False


class CancelledError(NetworkError):
    cancelled = True
    reason = "operation cancelled"


class ResponseUnreadableError(OperationError):
    kind = ErrorKind.RESPONSE_UNREADABLE


error_by_kind: Dict[ErrorKind, Type[OperationError]] = {
    cls.kind: cls
    for cls in (
        InvalidCredentialsError,
        UnauthorizedError,
        ForbiddenError,
        NotFoundError,
        ConflictError,
        InsufficientStorageError,
        ServerError,
        UnknownStatusError,
        NetworkError,
        ResponseUnreadableError,
    )
}
