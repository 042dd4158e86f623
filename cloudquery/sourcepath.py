"""Normalising policy source locations and splitting off sub-policy paths."""

from __future__ import annotations

import os
import posixpath
import re
from urllib.parse import unquote, urlsplit

_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


def _clean(path: str) -> str:
    """Lexically clean a slash-separated path."""
    if not path:
        return "."
    cleaned = posixpath.normpath(path)
    if cleaned.startswith("//"):
        cleaned = "/" + cleaned.lstrip("/")
    return cleaned


def _join(*elements: str) -> str:
    """Join the non-empty elements with slashes and clean the result."""
    present = [element for element in elements if element]
    if not present:
        return ""
    return _clean("/".join(present))


def _host_and_path(src: str) -> tuple[str, str] | None:
    """Return the host and decoded path of src, or None if it is not a valid URL."""
    if _BAD_ESCAPE.search(src) or any(ord(ch) < 0x20 or ord(ch) == 0x7F for ch in src):
        return None
    try:
        parts = urlsplit(src)
    except ValueError:
        return None
    host = parts.netloc.rpartition("@")[2]
    path = unquote(parts.path)
    if parts.scheme and not src[len(parts.scheme) + 1 :].startswith("/"):
        # scheme:opaque form carries no path
        path = ""
    return host, path


def _extension(path: str) -> str:
    name = path.rsplit("/", 1)[-1]
    dot = name.rfind(".")
    return name[dot:] if dot >= 0 else ""


def normalize_path(src: str) -> str:
    """Reduce a source location to a stable host/path form usable as a directory name."""
    forced = src.split("::")
    src = forced[1] if len(forced) > 1 else forced[0]

    parsed = _host_and_path(src)
    if parsed is not None:
        src = _join(*parsed)

    src = src.split("@")[0]

    ext = _extension(src)
    if ext:
        src = src.rstrip(ext)
    return src.replace(os.sep, "/")


def parse_source_sub_policy(src: str) -> tuple[str, str]:
    """Split a source into the location without its sub-policy and the sub-policy.

    The sub-policy follows a ``//`` after the host part; query (``?``) and
    version (``@``) suffixes stay with the location.
    """
    stop = len(src)
    question = src.find("?")
    if question > -1:
        stop = question
    at = src.find("@")
    if at > -1:
        stop = at

    offset = 0
    scheme_end = src[:stop].find("://")
    if scheme_end > -1:
        offset = scheme_end + 3

    idx = src[offset:stop].find("//")
    if idx == -1:
        return src, ""

    idx += offset
    subdir = src[idx + 2 :]
    src = src[:idx]

    question = subdir.find("?")
    if question > -1:
        src += subdir[question:]
        subdir = subdir[:question]

    at = subdir.find("@")
    if at > -1:
        src += subdir[at:]
        subdir = subdir[:at]

    if subdir:
        subdir = _clean(subdir)
    return src, subdir