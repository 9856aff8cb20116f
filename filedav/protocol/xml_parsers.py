"""
Pure functions for parsing WebDAV XML responses.

All functions in this module are pure - they take XML bytes in and return
structured data out, with no side effects or I/O.
"""

import logging
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Optional

from lxml import etree
from lxml.etree import _Element

from filedav.lib import error
from filedav.lib.namespace import localname
from filedav.lib.url import href_to_path

from .types import FileRecord

log = logging.getLogger(__name__)


def parse_propfind_response(
    body: bytes,
    huge_tree: bool = False,
) -> list[FileRecord]:
    """
    Parse the multistatus body of a PROPFIND response into file records.

    Args:
        body: Raw XML response bytes
        huge_tree: Allow parsing very large XML documents

    Returns:
        One FileRecord per usable DAV:response, in document order.  Broken
        responses are skipped, a broken document gives an empty list.
    """
    if not body:
        return []

    parser = etree.XMLParser(
        huge_tree=huge_tree, resolve_entities=False, no_network=True
    )
    try:
        tree = etree.fromstring(body, parser)
    except (etree.XMLSyntaxError, ValueError) as e:
        error.weirdness("PROPFIND response is not well-formed XML", e)
        return []

    multistatus = _strip_to_multistatus(tree)
    if multistatus is None:
        error.weirdness("no multistatus element in PROPFIND response", tree.tag)
        return []

    files: list[FileRecord] = []
    for elem in multistatus:
        if localname(elem.tag) != "response":
            continue
        record = _parse_response_element(elem)
        if record is not None:
            files.append(record)
    return files


# Helper functions


def _strip_to_multistatus(tree: _Element) -> Optional[_Element]:
    """
    The general format is:
        <multistatus>
            <response>...</response>
            <response>...</response>
        </multistatus>

    but some servers wrap it in an extra element.
    """
    if localname(tree.tag) == "multistatus":
        return tree
    for child in tree:
        if localname(child.tag) == "multistatus":
            return child
    return None


def _children(elem: _Element, name: str) -> list[_Element]:
    return [child for child in elem if localname(child.tag) == name]


def _text(elem: Optional[_Element]) -> Optional[str]:
    if elem is None or elem.text is None:
        return None
    text = elem.text.strip()
    return text or None


def _parse_response_element(response: _Element) -> Optional[FileRecord]:
    """
    Turn a single DAV:response element into a FileRecord.

    Returns None when the response has no href or carries a property
    value that can't be interpreted.
    """
    href = None
    for elem in _children(response, "href"):
        href = _text(elem)
        if href:
            break
    if not href:
        log.debug("skipping response without href")
        return None
    path = href_to_path(href)

    props = _extract_properties(response)
    try:
        return _make_record(path, props)
    except ValueError as e:
        log.debug(f"skipping response for {path}: {e}")
        return None


def _extract_properties(response: _Element) -> dict[str, _Element]:
    """
    Collect the properties of all propstat blocks, keyed on local name.
    Properties reported with a 404 status were not found on the server
    and are ignored.
    """
    properties: dict[str, _Element] = {}

    for propstat in _children(response, "propstat"):
        status = None
        for status_elem in _children(propstat, "status"):
            status = _text(status_elem)
        if status and " 404 " in status:
            continue

        for prop in _children(propstat, "prop"):
            for child in prop:
                name = localname(child.tag)
                if name is not None and name not in properties:
                    properties[name] = child

    return properties


def _make_record(path: str, props: dict[str, _Element]) -> FileRecord:
    content_type = _text(props.get("getcontenttype"))

    size_text = _text(props.get("size")) or _text(props.get("getcontentlength"))
    size = int(size_text) if size_text else 0
    if size < 0:
        raise ValueError(f"negative size {size}")

    return FileRecord(
        path=path,
        is_directory=_is_directory(path, content_type, props.get("resourcetype")),
        last_modified=_parse_date(_text(props.get("getlastmodified"))),
        etag=_strip_etag(_text(props.get("getetag"))),
        content_type=content_type,
        file_id=_text(props.get("fileid")),
        permissions=_text(props.get("permissions")),
        size=size,
        has_preview=_flag(_text(props.get("has-preview"))),
        is_favorite=_flag(_text(props.get("favorite"))),
    )


def _is_directory(
    path: str, content_type: Optional[str], resourcetype: Optional[_Element]
) -> bool:
    if resourcetype is not None and _children(resourcetype, "collection"):
        return True
    if content_type == "httpd/unix-directory":
        return True
    return path.endswith("/")


def _parse_date(value: Optional[str]) -> Optional[datetime]:
    """getlastmodified is an RFC 1123 date"""
    if not value:
        return None
    try:
        date = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        error.weirdness("unparsable getlastmodified", value)
        return None
    if date.tzinfo is None:
        date = date.replace(tzinfo=timezone.utc)
    return date


def _strip_etag(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    if value.startswith("W/"):
        value = value[2:]
    if len(value) >= 2 and value[0] == '"' and value[-1] == '"':
        value = value[1:-1]
    return value


def _flag(value: Optional[str]) -> bool:
    return value is not None and value.lower() in ("1", "true")
