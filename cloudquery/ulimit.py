"""Raising the open-file limit of the current process."""

from __future__ import annotations

import logging
import resource

ULIMIT_UNIX = 16384

_log = logging.getLogger("cloudquery.ulimit")


def get_ulimit() -> tuple[int, int]:
    """Return the (soft, hard) limit on open file descriptors."""
    return resource.getrlimit(resource.RLIMIT_NOFILE)


def set_ulimit(limit: int) -> None:
    """Set the soft open-file limit to limit, raising the hard limit if it is lower."""
    try:
        soft, hard = get_ulimit()
    except (OSError, ValueError) as exc:
        _log.error("error getting ulimit: %s", exc)
        soft, hard = 0, 0
    if hard != resource.RLIM_INFINITY and hard < limit:
        _log.debug("adjusting max ulimit from %s to %s", hard, limit)
        hard = limit
    _log.debug("adjusting current ulimit from %s to %s", soft, limit)
    resource.setrlimit(resource.RLIMIT_NOFILE, (limit, hard))


def check_and_set_ulimit() -> bool:
    """Try to raise the open-file limit; return False and log if that fails."""
    try:
        set_ulimit(ULIMIT_UNIX)
    except (OSError, ValueError) as exc:
        _log.error("error setting ulimit: %s", exc)
        return False
    return True