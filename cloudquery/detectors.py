"""Detection of policy source kinds and their conversion to fetchable URLs."""

from __future__ import annotations

import os
from urllib.parse import parse_qs, parse_qsl, quote, unquote, urlencode, urlsplit, urlunsplit

import requests

GITHUB_API = "https://api.github.com"
HUB_PREFIX = "github.com/cloudquery-policies/"

_PATH_SAFE = "/$&+,:;=@!'()*~"
_TIMEOUT = 30


class DetectError(Exception):
    """Raised when a source looks like a known kind but cannot be resolved."""


def _file_url(path: str) -> str:
    return "file://" + path.replace(os.sep, "/")


class FileDetector:
    """Detects local paths that exist on disk."""

    def detect(self, src: str, pwd: str = "") -> str | None:
        if not src:
            return None
        check_path = src
        if pwd and not os.path.isabs(src):
            check_path = os.path.join(pwd, src)
        if not os.path.exists(check_path):
            return None
        if not os.path.isabs(src):
            if not pwd:
                raise DetectError("relative paths require a module with a pwd")
            src = os.path.join(os.path.realpath(pwd), src)
        return _file_url(src)


def add_latest_tag(url: str, owner: str, repo: str) -> str:
    """Return url with a ``ref`` query parameter set to the repository's latest tag.

    The url is returned unchanged when the repository has no tags.
    """
    try:
        response = requests.get(
            f"{GITHUB_API}/repos/{quote(owner, safe='')}/{quote(repo, safe='')}/tags",
            params={"per_page": 1},
            headers={"Accept": "application/vnd.github.v3+json"},
            timeout=_TIMEOUT,
        )
        response.raise_for_status()
        tags = response.json()
    except (requests.RequestException, ValueError) as exc:
        raise DetectError(f"failed to find tags: {exc}") from exc
    if not tags:
        return url
    parts = urlsplit(url)
    query = parse_qsl(parts.query, keep_blank_values=True)
    query.append(("ref", tags[0].get("name", "")))
    query.sort(key=lambda pair: pair[0])
    return urlunsplit(parts._replace(query=urlencode(query)))


def _git_source(base: str, owner: str, repo: str, rest: list[str]) -> str:
    if "ref" not in parse_qs(urlsplit(base).query, keep_blank_values=True):
        base = add_latest_tag(base, owner, repo)
    parts = urlsplit(base)
    path = unquote(parts.path)
    if not path.endswith(".git"):
        path += ".git"
    if rest:
        path += "//" + "/".join(rest)
    return "git::" + urlunsplit(parts._replace(path=quote(path, safe=_PATH_SAFE)))


def _parse_base(parts: list[str]) -> str:
    url = "https://" + "/".join(parts[:3])
    try:
        urlsplit(url)
    except ValueError as exc:
        raise DetectError(f"error parsing GitHub URL: {exc}") from exc
    return url


class GitHubDetector:
    """Turns ``github.com/owner/repo[/sub/dir]`` sources into git URLs."""

    def detect(self, src: str, pwd: str = "") -> str | None:
        if not src or not src.startswith("github.com/"):
            return None
        parts = src.split("/")
        if len(parts) < 3:
            raise DetectError("GitHub URLs should be github.com/username/repo")
        return _git_source(_parse_base(parts), parts[1], parts[2], parts[3:])


class HubDetector:
    """Resolves bare policy names against the policy hub organisation."""

    def detect(self, src: str, pwd: str = "") -> str | None:
        if not src:
            return None
        try:
            is_file = FileDetector().detect(src, pwd) is not None
        except DetectError:
            is_file = True
        if is_file:
            return None

        parts = (HUB_PREFIX + src).split("/")
        if len(parts) < 3:
            raise DetectError("CloudQuery Hub URLs should be <policy-name>")
        base = _parse_base(parts)
        try:
            response = requests.get(base, timeout=_TIMEOUT)
            response.close()
        except requests.RequestException as exc:
            raise DetectError(f"failed to check if policy in hub: {exc}") from exc
        if response.status_code == 404:
            return None
        return _git_source(base, parts[1], parts[2], parts[3:])


FORCED_PROTOCOLS = frozenset({"github", "git", "s3", "gcs", "hub", "file"})

_DETECTORS = (
    ("github", GitHubDetector()),
    ("file", FileDetector()),
    ("hub", HubDetector()),
)


def detect_type(src: str) -> tuple[str, str] | None:
    """Return the kind of src and its resolved source, or None if nothing matches.

    A ``kind::`` prefix naming a known kind is taken as given.
    """
    forced = src.split("::")
    if len(forced) > 1 and forced[0] in FORCED_PROTOCOLS:
        return forced[0], src

    pwd = os.getcwd()
    for kind, detector in _DETECTORS:
        try:
            source = detector.detect(src, pwd)
        except DetectError as exc:
            raise DetectError(f"failed to detect url {src}: {exc}") from exc
        if source is not None:
            return kind, source
    return None