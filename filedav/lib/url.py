#!/usr/bin/env python
import urllib.parse
from typing import cast
from typing import Optional
from typing import Union
from urllib.parse import ParseResult
from urllib.parse import quote
from urllib.parse import SplitResult
from urllib.parse import unquote
from urllib.parse import urlparse
from urllib.parse import urlunparse


class URL:
    """
    This class is for wrapping URLs into objects.  It's used
    internally in the library, end users should not need to know
    anything about this class.

    The base URL of an account always ends with a slash, and every
    path handed to the public operations is relative to it - also
    when it starts with a slash.  "/docs/a.txt" on an account with
    base URL "https://example.com/remote.php/dav/files/bob/" refers
    to "https://example.com/remote.php/dav/files/bob/docs/a.txt".
    """

    def __init__(self, url: Union[str, ParseResult, SplitResult]) -> None:
        if isinstance(url, ParseResult) or isinstance(url, SplitResult):
            self.url_parsed: Optional[Union[ParseResult, SplitResult]] = url
            self.url_raw = None
        else:
            self.url_raw = url
            self.url_parsed = None

    # To deal with all kind of methods/properties in the ParseResult
    # class
    def __getattr__(self, attr: str):
        if "url_parsed" not in vars(self):
            raise AttributeError(attr)
        if self.url_parsed is None:
            self.url_parsed = cast(urllib.parse.ParseResult, urlparse(self.url_raw))
        if hasattr(self.url_parsed, attr):
            return getattr(self.url_parsed, attr)
        else:
            return getattr(str(self), attr)

    def __str__(self) -> str:
        if self.url_raw is None:
            if self.url_parsed is None:
                raise ValueError("Unexpected value None for self.url_parsed")

            self.url_raw = self.url_parsed.geturl()
        return self.url_raw

    def is_auth(self) -> bool:
        return self.username is not None

    def unauth(self) -> "URL":
        """Strip user:pass@ from the network location"""
        if not self.is_auth():
            return self
        netloc = self.hostname or ""
        if ":" in netloc:
            netloc = "[%s]" % netloc
        if self.port:
            netloc = "%s:%s" % (netloc, self.port)
        return URL(
            ParseResult(
                self.scheme,
                netloc,
                self.path,
                self.params,
                self.query,
                self.fragment,
            )
        )

    def append(self, path: str) -> "URL":
        """
        Append path segments to this (base) URL.  Leading slashes in
        path are ignored, so the result always stays below the base.
        Every segment is percent-quoted as it is, a "%" in path is a
        literal percent sign, so paths from list_files address the
        same resource.  A trailing slash in path is kept.
        """
        path = str(path or "").lstrip("/")
        if not path:
            return self
        base_path = self.path
        if not base_path.endswith("/"):
            base_path += "/"
        ## collapse empty segments, "a//b" becomes "a/b"
        segments = [s for s in path.split("/") if s]
        ret_path = base_path + "/".join(quote(s, safe="@:+!$&'()*,;=~") for s in segments)
        if path.endswith("/"):
            ret_path += "/"
        return URL(
            ParseResult(
                self.scheme,
                self.netloc,
                ret_path,
                "",
                "",
                "",
            )
        )

    def canonical(self) -> "URL":
        """
        a canonical URL ... remove authentication details, lowercase
        scheme and host, make sure the path is properly quoted and
        ends with a slash.  Used as base URL of an account.
        """
        url = self.unauth()
        arr = list(urlparse(str(url)))
        arr[0] = arr[0].lower()
        arr[1] = arr[1].lower()
        arr[2] = quote(unquote(arr[2] or "/"))
        if not arr[2].endswith("/"):
            arr[2] += "/"
        arr[3] = arr[4] = arr[5] = ""
        return URL(urlunparse(arr))


def href_to_path(href: str) -> str:
    """
    hrefs in a multistatus body may be absolute URLs or absolute
    paths, quoted or not.  Return the unquoted path.
    """
    ## Confluence quotes the @ twice
    if "%2540" in href:
        href = href.replace("%2540", "%40")
    if "://" in href:
        href = URL(href).path
    return unquote(href)
