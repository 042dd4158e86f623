import pytest

from cloudquery.fetchfilter import (
    CloudQuery,
    Config,
    NothingToFetchError,
    Provider,
    RequiredProvider,
    filter_config_providers,
)


def _aws_config():
    return Config(
        providers=[Provider(name="aws", resources=["res1", "res2"])],
        cloudquery=CloudQuery(providers=[RequiredProvider(name="aws")]),
    )


def test_empty_config():
    cfg = Config()
    filter_config_providers(None)(cfg)
    assert cfg == Config()


def test_unmatching_filter():
    cfg = _aws_config()
    with pytest.raises(NothingToFetchError, match="^nothing to fetch$"):
        filter_config_providers(["gcp"])(cfg)


def test_resource_filter():
    cfg = _aws_config()
    filter_config_providers(["aws:res2"])(cfg)
    assert cfg == Config(
        providers=[Provider(name="aws", resources=["res2"])],
        cloudquery=CloudQuery(providers=[RequiredProvider(name="aws")]),
    )


def test_aliases_one_alias_and_one_other_provider():
    cfg = Config(
        providers=[
            Provider(name="aws", resources=["res1", "res2"]),
            Provider(name="aws", alias="aws2", resources=["res2", "res3"]),
            Provider(name="gcp", resources=["gcpres1", "gcpres2"]),
        ],
        cloudquery=CloudQuery(providers=[RequiredProvider(name="aws"), RequiredProvider(name="gcp")]),
    )
    filter_config_providers(["aws2:res2", "gcp"])(cfg)
    assert cfg == Config(
        providers=[
            Provider(name="aws", alias="aws2", resources=["res2"]),
            Provider(name="gcp", resources=["gcpres1", "gcpres2"]),
        ],
        cloudquery=CloudQuery(providers=[RequiredProvider(name="aws"), RequiredProvider(name="gcp")]),
    )


def test_star_keeps_configured_resources():
    cfg = _aws_config()
    filter_config_providers(["aws:*"])(cfg)
    assert cfg.providers == [Provider(name="aws", resources=["res1", "res2"])]


def test_unused_required_provider_removed():
    cfg = Config(
        providers=[Provider(name="aws"), Provider(name="gcp")],
        cloudquery=CloudQuery(providers=[RequiredProvider(name="aws"), RequiredProvider(name="gcp")]),
    )
    filter_config_providers(["gcp"])(cfg)
    assert cfg.cloudquery.providers == [RequiredProvider(name="gcp")]
    assert cfg.providers == [Provider(name="gcp")]


def test_none_config_is_ignored():
    apply = filter_config_providers(["aws"])
    assert apply(None) is None
    cfg = Config(providers=[Provider(name="aws")])
    apply(cfg)
    assert cfg == Config(providers=[Provider(name="aws")])