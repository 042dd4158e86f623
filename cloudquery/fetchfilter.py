"""Restricting a configuration to selected providers and resources."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field


class NothingToFetchError(ValueError):
    """Raised when filtering leaves no provider to fetch."""

    def __init__(self) -> None:
        super().__init__("nothing to fetch")


@dataclass
class Provider:
    """A configured provider block."""

    name: str
    alias: str = ""
    resources: list[str] = field(default_factory=list)


@dataclass
class RequiredProvider:
    """A provider the configuration requires to be installed."""

    name: str
    source: str | None = None
    version: str = ""


@dataclass
class CloudQuery:
    """The top-level cloudquery block."""

    providers: list[RequiredProvider] = field(default_factory=list)
    plugin_directory: str = ""
    policy_directory: str = ""


@dataclass
class Config:
    providers: list[Provider] = field(default_factory=list)
    cloudquery: CloudQuery = field(default_factory=CloudQuery)


def _parse_filter(items: Iterable[str]) -> dict[str, list[str] | None]:
    selection: dict[str, list[str] | None] = {}
    for item in items:
        provider, sep, resources = item.partition(":")
        if sep and resources != "*":
            selection[provider] = resources.split(",")
        else:
            selection[provider] = None
    return selection


def filter_config_providers(items: Iterable[str] | None) -> Callable[[Config | None], None]:
    """Return a function that narrows a config to the given selection.

    Each item is ``provider`` or ``provider:*`` for all configured resources,
    or ``provider:res1,res2`` for just those; the provider is matched by
    alias when it has one. Raises NothingToFetchError if nothing remains.
    """
    selection_items = list(items or [])

    def apply(cfg: Config | None) -> None:
        if not selection_items or cfg is None or not cfg.providers or not cfg.cloudquery.providers:
            return

        selection = _parse_filter(selection_items)
        required: set[str] = set()
        kept: list[Provider] = []
        for provider in cfg.providers:
            key = provider.alias or provider.name
            if key not in selection:
                continue
            required.add(provider.name)
            resources = selection[key]
            if resources:
                provider.resources = list(resources)
            kept.append(provider)

        cfg.cloudquery.providers = [p for p in cfg.cloudquery.providers if p.name in required]
        cfg.providers = kept

        if not cfg.cloudquery.providers or not cfg.providers:
            raise NothingToFetchError()

    return apply