"""
Server trust decisions for TLS connections.

A trust evaluator is a plain callable receiving a
:class:`ServerTrustChallenge` and returning a :class:`TrustDecision`.  It
is consulted once per host and port for each transport session, before the
first request goes out, so a self-signed server can be accepted for one
account without weakening certificate checks anywhere else.
"""

from __future__ import annotations

import socket
import ssl
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Union


class TrustDecision(Enum):
    ACCEPT = "accept"
    REJECT = "reject"
    USE_DEFAULT = "use_default"


@dataclass(frozen=True)
class ServerTrustChallenge:
    """
    Attributes:
        host: server host name
        port: server port
        certificate: the server's leaf certificate, DER encoded
        verified: True if the certificate passed the default verification
        verify_error: why default verification failed, if it did
    """

    host: str
    port: int
    certificate: bytes
    verified: bool
    verify_error: Optional[str] = None


TrustEvaluator = Callable[[ServerTrustChallenge], TrustDecision]


def _peer_certificate(
    host: str, port: int, context: ssl.SSLContext, timeout: float
) -> bytes:
    with socket.create_connection((host, port), timeout=timeout) as sock:
        with context.wrap_socket(sock, server_hostname=host) as ssock:
            return ssock.getpeercert(binary_form=True) or b""


def probe_server_trust(
    host: str,
    port: int = 443,
    timeout: float = 10.0,
    verify: Union[bool, str] = True,
) -> ServerTrustChallenge:
    """
    Fetch the server certificate and find out whether default
    verification accepts it.  verify may be the path of a CA bundle.
    Connection problems raise OSError.
    """
    if isinstance(verify, str):
        context = ssl.create_default_context(cafile=verify)
    else:
        context = ssl.create_default_context()
    try:
        der = _peer_certificate(host, port, context, timeout)
        return ServerTrustChallenge(host=host, port=port, certificate=der, verified=True)
    except ssl.SSLCertVerificationError as e:
        verify_error = e.verify_message or str(e)

    unverified = ssl.create_default_context()
    unverified.check_hostname = False
    unverified.verify_mode = ssl.CERT_NONE
    der = _peer_certificate(host, port, unverified, timeout)
    return ServerTrustChallenge(
        host=host, port=port, certificate=der, verified=False, verify_error=verify_error
    )
