"""
WebDAV protocol operations combining request building and response parsing.

This class provides a high-level interface to the WebDAV operations while
remaining completely I/O-free.
"""

import base64
from typing import Any, Dict, List, Mapping, Optional, Tuple

from filedav.account import AccountIdentity
from filedav.lib import error
from filedav.lib.url import URL

from .classify import classify
from .types import DAVMethod, DAVRequest, DAVResponse, FileRecord
from .xml_builders import build_propfind_body
from .xml_parsers import parse_propfind_response


def basic_auth_header(username: str, password: str) -> str:
    """
    Authorization header value for Basic auth.  The credentials are
    always sent UTF-8 encoded.
    """
    credentials = f"{username}:{password}".encode("utf-8")
    return "Basic %s" % base64.b64encode(credentials).decode("ascii")


def build_request(
    identity: AccountIdentity,
    password: str,
    path: str,
    method: DAVMethod,
    body: Optional[bytes] = None,
    body_file: Optional[str] = None,
    headers: Optional[Mapping[str, str]] = None,
) -> DAVRequest:
    """
    Build an authorized request.

    Args:
        identity: resolved account
        password: password of the account
        path: path relative to the account base URL, a leading slash
            does not escape the base URL
        method: HTTP method, used as given
        body: request body
        body_file: local file to stream as request body
        headers: extra headers; the Authorization header can't be overridden

    Returns:
        DAVRequest ready for execution
    """
    if body is not None and body_file is not None:
        raise ValueError("body and body_file are mutually exclusive")
    final_headers: Dict[str, str] = dict(headers or {})
    final_headers["Authorization"] = basic_auth_header(identity.username, password)
    return DAVRequest(
        method=method,
        url=str(URL(identity.base_url).append(path)),
        headers=final_headers,
        body=body,
        body_file=body_file,
    )


class WebDAVProtocol:
    """
    Sans-I/O WebDAV protocol handler for one account.

    Builds requests and parses responses without doing any I/O.
    All HTTP communication is delegated to the transport.

    Example:
        protocol = WebDAVProtocol(identity, password)

        # Build request
        request = protocol.propfind_request("/docs/")

        # Execute with your I/O (not shown)
        response = transport.execute(request)

        # Parse response
        files, err = protocol.parse_propfind(response)
    """

    def __init__(
        self,
        identity: AccountIdentity,
        password: str,
        headers: Optional[Mapping[str, str]] = None,
        huge_tree: bool = False,
    ) -> None:
        """
        Args:
            identity: resolved account
            password: password for Basic authentication
            headers: extra headers for all requests (User-Agent etc.)
            huge_tree: allow very large PROPFIND responses
        """
        self.identity = identity
        self.password = password
        self.headers = dict(headers or {})
        self.huge_tree = huge_tree

    def _request(
        self,
        path: str,
        method: DAVMethod,
        body: Optional[bytes] = None,
        body_file: Optional[str] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> DAVRequest:
        return build_request(
            self.identity,
            self.password,
            path,
            method,
            body=body,
            body_file=body_file,
            headers={**self.headers, **(headers or {})},
        )

    # =========================================================================
    # Request builders
    # =========================================================================

    def propfind_request(self, path: str) -> DAVRequest:
        """
        Build a PROPFIND request for the properties file records are
        made of.  No Depth header is sent, the server default applies.
        """
        return self._request(
            path,
            DAVMethod.PROPFIND,
            body=build_propfind_body(),
            headers={"Content-Type": 'application/xml; charset="utf-8"'},
        )

    def put_request(self, path: str, data: bytes) -> DAVRequest:
        return self._request(path, DAVMethod.PUT, body=bytes(data))

    def put_file_request(self, path: str, file: Any) -> DAVRequest:
        """Upload from a local file, the file is read by the transport"""
        return self._request(path, DAVMethod.PUT, body_file=str(file))

    def get_request(self, path: str) -> DAVRequest:
        return self._request(path, DAVMethod.GET)

    def mkcol_request(self, path: str) -> DAVRequest:
        return self._request(path, DAVMethod.MKCOL)

    def delete_request(self, path: str) -> DAVRequest:
        return self._request(path, DAVMethod.DELETE)

    # =========================================================================
    # Response parsers
    # =========================================================================

    def parse_propfind(
        self,
        response: Optional[DAVResponse],
        transport_error: Optional[BaseException] = None,
        url: Optional[str] = None,
    ) -> Tuple[Optional[List[FileRecord]], Optional[error.OperationError]]:
        _, err = self._classify(response, transport_error, url, require_text=True)
        if err is not None:
            return None, err
        return parse_propfind_response(response.body, huge_tree=self.huge_tree), None

    def parse_download(
        self,
        response: Optional[DAVResponse],
        transport_error: Optional[BaseException] = None,
        url: Optional[str] = None,
    ) -> Tuple[Optional[bytes], Optional[error.OperationError]]:
        data, err = self._classify(response, transport_error, url)
        if err is not None:
            return None, err
        return data or b"", None

    def parse_status(
        self,
        response: Optional[DAVResponse],
        transport_error: Optional[BaseException] = None,
        url: Optional[str] = None,
    ) -> Optional[error.OperationError]:
        """For operations without payload - upload, mkcol, delete"""
        return self._classify(response, transport_error, url)[1]

    def _classify(
        self,
        response: Optional[DAVResponse],
        transport_error: Optional[BaseException],
        url: Optional[str],
        require_text: bool = False,
    ) -> Tuple[Any, Optional[error.OperationError]]:
        if response is None:
            return classify(None, transport_error, url=url)
        return classify(
            response.status,
            transport_error,
            body=response.body,
            require_text=require_text,
            url=url,
            reason=response.reason,
        )
