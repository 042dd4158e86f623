# cloudquery

Building blocks for a cloud asset inventory tool. The package is a library
of the pieces that sit underneath a command line:

- **Policy sources** – `cloudquery.sourcepath` normalises source locations
  and splits off sub-policy paths; `cloudquery.detectors` turns local paths,
  `github.com/owner/repo` sources and bare policy-hub names into fetchable
  `git::` or `file://` sources (`FileDetector`, `GitHubDetector`,
  `HubDetector`, `detect_type`, `add_latest_tag`).
- **Fetch filtering** – `cloudquery.fetchfilter` narrows a `Config` down to
  selected providers and resources.
- **Logging** – `cloudquery.kvlog.KVLogAdapter` logs messages with
  alternating key/value arguments as structured fields;
  `cloudquery.logconfig.configure` sets up coloured console output and/or a
  size-rotated JSON log file; `cloudquery.keyvals.to_map` pairs up key/value
  lists.
- **Telemetry** – `cloudquery.tracing` provides spans and a context-local
  tracer; `cloudquery.errclass` classifies errors that are not worth crash
  reporting; `cloudquery.telemetry.TelemetryClient` collects spans and
  exports them on shutdown.
- **Persistent data** – `cloudquery.persistentdata.PersistentFile` reads a
  small value from `~/.cq` or the data directory and generates and stores it
  on first use.
- **System helpers** – `cloudquery.localfs.LocalFs` (streamed downloads with
  progress callbacks, directory walking), `cloudquery.signalcontext`
  (interrupt-aware cancellation), `cloudquery.ulimit` (raising the open-file
  limit, POSIX only), `cloudquery.uniq.unique` and
  `cloudquery.hashing.sha256_hex`.

## Installing

```
pip install .
pip install ".[test]"   # with pytest and responses
```

## Examples

Normalise and split policy sources:

```python
from cloudquery.sourcepath import normalize_path, parse_source_sub_policy

normalize_path("git::https://example.com/org/policies?ref=v0.0.1")
# 'example.com/org/policies'

parse_source_sub_policy("proto://dom.com/path//path2?q=p")
# ('proto://dom.com/path?q=p', 'path2')
```

Detect what kind of source a string is. `detect_type` returns a
`(kind, source)` pair or `None`, and raises `DetectError` when a source looks
like a known kind but cannot be resolved. GitHub and hub detection query the
network to find the latest tag when no `ref` is given.

```python
from cloudquery.detectors import detect_type

detect_type("git::https://example.com/org/repo.git")
# ('git', 'git::https://example.com/org/repo.git')
```

Restrict a configuration to some providers before fetching:

```python
from cloudquery.fetchfilter import (
    CloudQuery, Config, NothingToFetchError, Provider, RequiredProvider,
    filter_config_providers,
)

config = Config(
    providers=[Provider("aws", resources=["ec2.instances", "s3.buckets"])],
    cloudquery=CloudQuery(providers=[RequiredProvider("aws")]),
)
mutate = filter_config_providers(["aws:s3.buckets"])
try:
    mutate(config)          # changes config in place
except NothingToFetchError:
    print("no configured provider matched")
config.providers[0].resources   # ['s3.buckets']
```

Logging with key/value fields:

```python
from cloudquery.kvlog import KVLogAdapter
from cloudquery.logconfig import LogConfig, configure

logger = configure(LogConfig(console_logging_enabled=True, verbose=True))
log = KVLogAdapter(logger).with_args("component", "fetch")
log.info("started", "providers", 2)
```

Spans on the current tracer:

```python
from cloudquery.tracing import Tracer, start_span, use_tracer

with use_tracer(Tracer("example")) as tracer:
    span, close = start_span("work", {"items": 3})
    close(RuntimeError("boom"))   # True: the error was recorded on the span
```

Everyday helpers:

```python
from cloudquery.uniq import unique
from cloudquery.hashing import sha256_hex
from cloudquery.keyvals import to_map
from cloudquery.errclass import should_ignore_pg_code

unique(["b", "a", "b"])           # ['a', 'b']
sha256_hex(b"")                   # 'e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855'
to_map(["key", "value", "extra"]) # {'key': 'value', 'extra': None}
should_ignore_pg_code("57P03")    # True
```

## Telemetry

`TelemetryClient` reads (or creates) a random id in `telemetry-random-id`
under `~/.cq` or its `data_dir`, builds resource attributes with host names
and hardware addresses hashed one way, and on `shutdown()` either writes the
finished spans as JSON to an `exporter` file or posts them to
`<endpoint>/v1/traces`. With `disabled=True` its tracer records nothing and
nothing is exported. `is_ci()` and `is_faas()` report whether the process
runs under a CI system or a functions-as-a-service platform;
`hash_attribute()` returns the SHA-1 hex digest of a value.

## What this package does not do

There is no command-line program: nothing here fetches cloud resources,
talks to a database, downloads or runs provider plugins, runs policies or
reads configuration files. `Config` objects for fetch filtering are built by
the caller.

## Tests

```
pytest
```