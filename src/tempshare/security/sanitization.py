"""Filename sanitization for stored blobs."""

import os
import re

_SEPARATORS = re.compile(r"[\\/]+")
_UNSAFE = re.compile(r'[<>:"|?*\x00-\x1f\s]+')
_RUNS = re.compile(r"_{2,}")

PLACEHOLDER = "unnamed"


def sanitize_filename(filename: str, max_length: int = 120) -> str:
    """Turn a client supplied filename into a single safe path segment.

    Directory parts are flattened into the name, ``.`` and ``..`` segments
    are dropped, and unsafe characters become underscores. Long names are
    cut before the extension.

    Example:
        >>> sanitize_filename("../../../etc/passwd")
        'etc_passwd'
        >>> sanitize_filename("my report.pdf")
        'my_report.pdf'
    """
    segments = [s for s in _SEPARATORS.split(filename or "") if s not in ("", ".", "..")]
    name = _UNSAFE.sub("_", "_".join(segments))
    name = _RUNS.sub("_", name).strip("._ ")
    if not name:
        return PLACEHOLDER

    if len(name) <= max_length:
        return name
    base, ext = os.path.splitext(name)
    if len(ext) >= max_length:
        return name[:max_length]
    return base[: max_length - len(ext)] + ext
