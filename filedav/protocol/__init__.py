"""
Sans-I/O WebDAV protocol implementation.

This module provides protocol-level operations without any I/O.
It builds requests and parses responses as pure data transformations.

The protocol layer is organized into:
- types: Core data structures (DAVRequest, DAVResponse, FileRecord)
- xml_builders: the PROPFIND request body
- xml_parsers: Pure functions to parse XML response bodies
- classify: status/transport outcome to result or OperationError
- operations: WebDAVProtocol class combining builders and parsers
"""

from .types import (
    DAVMethod,
    DAVRequest,
    DAVResponse,
    FileRecord,
)
from .xml_builders import PROPFIND_BODY, build_propfind_body
from .xml_parsers import parse_propfind_response
from .classify import classify
from .operations import WebDAVProtocol, basic_auth_header, build_request

__all__ = [
    "DAVMethod",
    "DAVRequest",
    "DAVResponse",
    "FileRecord",
    "PROPFIND_BODY",
    "build_propfind_body",
    "parse_propfind_response",
    "classify",
    "WebDAVProtocol",
    "basic_auth_header",
    "build_request",
]
