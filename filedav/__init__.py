#!/usr/bin/env python
import logging

__version__ = "0.9.0"

from .webdav import WebDAV
from .account import SimpleAccount
from .protocol.types import FileRecord

## Silence notification of no default logging handler
log = logging.getLogger("filedav")


class NullHandler(logging.Handler):
    def emit(self, record) -> None:
        pass


log.addHandler(NullHandler())

__all__ = ["__version__", "WebDAV", "SimpleAccount", "FileRecord"]
