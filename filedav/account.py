"""
Accounts and their canonical connection identity.

An account is any object exposing a ``username`` and either a full
``base_url`` or a ``host`` (with optional ``scheme``, ``port`` and
``path``).  :func:`resolve` turns it into an :class:`AccountIdentity`,
which keys the transport sessions and feeds the request builder.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional, Protocol, runtime_checkable

from filedav.lib import error
from filedav.lib.url import URL

log = logging.getLogger(__name__)


@runtime_checkable
class WebDAVAccount(Protocol):
    """The minimum an account object has to offer."""

    username: Optional[str]


@dataclass(frozen=True)
class SimpleAccount:
    """
    Plain account value.  Give either base_url, or host with the
    optional scheme/port/path parts.

    Example:
        SimpleAccount(username="bob", base_url="https://cloud.example.com/remote.php/dav/files/bob/")
        SimpleAccount(username="bob", host="dav.example.com", port=8443, path="/webdav")
    """

    username: Optional[str] = None
    base_url: Optional[str] = None
    host: Optional[str] = None
    scheme: str = "https"
    port: Optional[int] = None
    path: Optional[str] = None


@dataclass(frozen=True)
class AccountIdentity:
    """
    Validated connection identity.  Holds no password, so it's safe
    as a dict key and in log lines.
    """

    base_url: str
    username: str

    @property
    def url(self) -> URL:
        return URL(self.base_url)


def _compose_url(account: Any) -> URL:
    base_url = getattr(account, "base_url", None)
    if base_url:
        return URL(str(base_url))

    host = getattr(account, "host", None)
    if not host:
        raise error.InvalidCredentialsError("account has neither base_url nor host")
    scheme = getattr(account, "scheme", None) or "https"
    port = getattr(account, "port", None)
    path = getattr(account, "path", None) or "/"

    if "://" in host:
        ## someone put a full url into the host field
        raise error.InvalidCredentialsError(f"host {host!r} is not a hostname")
    netloc = host
    if ":" in host and not host.startswith("["):
        ## bare IPv6 address
        netloc = "[%s]" % host
    if port is not None:
        try:
            port = int(port)
        except (TypeError, ValueError):
            raise error.InvalidCredentialsError(f"invalid port {port!r}")
        netloc = "%s:%d" % (netloc, port)
    if not path.startswith("/"):
        path = "/" + path
    return URL("%s://%s%s" % (scheme, netloc, path))


def resolve(account: Any, password: Optional[str]) -> AccountIdentity:
    """
    Validate account and password into an AccountIdentity.

    Raises InvalidCredentialsError if the username is missing, the
    account does not compose into an absolute http(s) URL with a
    host, the port is out of range, or "username:password" can't be
    encoded as UTF-8 (which is what goes into the Authorization
    header).  Does no I/O.
    """
    username = getattr(account, "username", None)
    if username is None or not isinstance(username, str):
        raise error.InvalidCredentialsError("account has no username")
    if password is None or not isinstance(password, str):
        raise error.InvalidCredentialsError("password must be a string")

    url = _compose_url(account)
    if url.scheme not in ("http", "https"):
        raise error.InvalidCredentialsError(f"unsupported url scheme in {url}")
    try:
        hostname = url.hostname
        port = url.port
    except ValueError as e:
        raise error.InvalidCredentialsError(f"invalid url {url}: {e}") from e
    if not hostname:
        raise error.InvalidCredentialsError(f"no host in {url}")
    if port is not None and not 0 < port < 65536:
        raise error.InvalidCredentialsError(f"port {port} out of range")

    try:
        f"{username}:{password}".encode("utf-8")
    except UnicodeEncodeError as e:
        raise error.InvalidCredentialsError(
            "username or password can't be encoded as UTF-8"
        ) from e

    identity = AccountIdentity(base_url=str(url.canonical()), username=username)
    log.debug(f"resolved account {username} to {identity.base_url}")
    return identity
