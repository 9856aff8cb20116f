"""
Request bodies.

Nextcloud and ownCloud are picky about the PROPFIND body, the exact bytes
below are known to work with them (and with plain WebDAV servers, which
just report the vendor properties as 404).
"""

PROPFIND_BODY: bytes = (
    b'<?xml version="1.0"?>\n'
    b'<d:propfind  xmlns:d="DAV:" xmlns:oc="http://owncloud.org/ns" xmlns:nc="http://nextcloud.org/ns">\n'
    b"  <d:prop>\n"
    b"        <d:getlastmodified />\n"
    b"        <d:getetag />\n"
    b"        <d:getcontenttype />\n"
    b"        <oc:fileid />\n"
    b"        <oc:permissions />\n"
    b"        <oc:size />\n"
    b"        <nc:has-preview />\n"
    b"        <oc:favorite />\n"
    b"  </d:prop>\n"
    b"</d:propfind>"
)


def build_propfind_body() -> bytes:
    """
    Build PROPFIND request body XML.

    Returns:
        UTF-8 encoded XML bytes
    """
    return PROPFIND_BODY

