#!/usr/bin/env python
from typing import Optional


def localname(tag) -> Optional[str]:
    """
    Strip the namespace from a Clark-notation tag like
    "{DAV:}getetag".  Servers disagree on which namespace the
    vendor properties live in (and some don't qualify them at all),
    so properties are matched on local name only.  Comments and
    processing instructions have non-string tags and yield None.
    """
    if not isinstance(tag, str):
        return None
    if tag.startswith("{"):
        return tag.split("}", 1)[1]
    return tag
