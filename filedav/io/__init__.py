"""
I/O layer.

This module provides the transport executing DAVRequest objects and
returning DAVResponse objects.  The I/O layer is intentionally thin - it
only handles HTTP transport, TLS trust decisions and the background
worker pool.  All protocol logic (XML building/parsing, classification)
is in filedav.protocol.
"""

from .handle import OperationHandle
from .transport import SessionManager, TransportSession
from .trust import ServerTrustChallenge, TrustDecision, probe_server_trust

__all__ = [
    "OperationHandle",
    "SessionManager",
    "TransportSession",
    "ServerTrustChallenge",
    "TrustDecision",
    "probe_server_trust",
]
