"""
Core protocol types.

These dataclasses represent HTTP requests and responses at the protocol level,
independent of any I/O implementation, plus the file records parsed out of a
PROPFIND response.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from posixpath import basename, splitext


class DAVMethod(Enum):
    """The HTTP methods used by the client."""

    GET = "GET"
    PUT = "PUT"
    DELETE = "DELETE"
    PROPFIND = "PROPFIND"
    MKCOL = "MKCOL"


@dataclass(frozen=True)
class DAVRequest:
    """
    Represents an HTTP request to be made.

    This is a pure data structure with no I/O. It describes what request
    should be made, but does not make it.

    Attributes:
        method: HTTP method (GET, PUT, PROPFIND, etc.)
        url: Full URL for the request
        headers: HTTP headers as dict
        body: Request body as bytes (optional)
        body_file: Local file to stream as the request body (optional,
            mutually exclusive with body)
    """

    method: DAVMethod
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes | None = None
    body_file: str | None = None

    def redacted_headers(self) -> dict[str, str]:
        """Headers safe for logging."""
        return {
            k: ("<redacted>" if k.lower() == "authorization" else v)
            for k, v in self.headers.items()
        }


@dataclass(frozen=True)
class DAVResponse:
    """
    Represents an HTTP response received.

    Attributes:
        status: HTTP status code
        headers: HTTP headers as dict
        body: Response body as bytes
        reason: Reason phrase delivered by the server
    """

    status: int
    headers: dict[str, str]
    body: bytes
    reason: str = ""


@dataclass
class FileRecord:
    """
    A file or directory as reported by a PROPFIND response.

    Attributes:
        path: unquoted path of the resource, as delivered in the href
        is_directory: True for collections
        last_modified: getlastmodified, timezone aware
        etag: getetag without the surrounding quotes
        content_type: getcontenttype
        file_id: oc:fileid (ownCloud/Nextcloud)
        permissions: oc:permissions, like "RGDNVW"
        size: oc:size, or getcontentlength when oc:size is missing
        has_preview: nc:has-preview
        is_favorite: oc:favorite
    """

    path: str
    is_directory: bool = False
    last_modified: datetime | None = None
    etag: str | None = None
    content_type: str | None = None
    file_id: str | None = None
    permissions: str | None = None
    size: int = 0
    has_preview: bool = False
    is_favorite: bool = False

    @property
    def name(self) -> str:
        return basename(self.path.rstrip("/"))

    @property
    def extension(self) -> str:
        if self.is_directory:
            return ""
        return splitext(self.name)[1].lstrip(".")
