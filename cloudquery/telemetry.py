"""Anonymous usage telemetry: a tracer, a persisted random id and span export."""

from __future__ import annotations

import json
import logging
import os
import platform
import socket
import sys
import uuid
from collections.abc import Mapping
from typing import IO, Any

import requests

from .kvlog import KVLogAdapter, Level
from .persistentdata import DEFAULT_DATA_DIR, PersistentFile
from .tracing import Span, StatusCode, Tracer, mac_host, os_info

TIMEOUT = 2.0
DEFAULT_ENDPOINT = "telemetry.cloudquery.io:443"
TRACER_NAME = "cloudquery.io/internal/telemetry"
RANDOM_ID_FILE = "telemetry-random-id"
CQ_TEAM_ID = "12345678-0000-0000-0000-c1a0dbeef000"

CI_ENV_VARS = (
    "CI",
    "BUILD_ID",
    "BUILDKITE",
    "CIRCLECI",
    "CIRCLE_CI",
    "CIRRUS_CI",
    "CODEBUILD_BUILD_ID",
    "GITHUB_ACTIONS",
    "GITLAB_CI",
    "HEROKU_TEST_RUN_ID",
    "TEAMCITY_VERSION",
    "TF_BUILD",
    "TRAVIS",
)

FAAS_ENV_VARS = (
    "LAMBDA_TASK_ROOT",
    "AWS_LAMBDA_FUNCTION_NAME",
    "FUNCTION_TARGET",
    "AZURE_FUNCTIONS_ENVIRONMENT",
)

_OTLP_STATUS = {StatusCode.UNSET: 0, StatusCode.OK: 1, StatusCode.ERROR: 2}


def is_ci() -> bool:
    """True if a CI-specific environment variable is set."""
    return any(os.environ.get(name) for name in CI_ENV_VARS)


def is_faas() -> bool:
    """True if a function-as-a-service environment variable is set."""
    return any(os.environ.get(name) for name in FAAS_ENV_VARS)


def hash_attribute(value: str) -> str:
    """Return a one-way (SHA-1, hex) hash of an attribute value."""
    import hashlib

    return hashlib.sha1(value.encode("utf-8")).hexdigest()


def gen_random_id() -> str:
    """Return a new random UUID string."""
    return str(uuid.uuid4())


def _is_terminal() -> bool:
    isatty = getattr(sys.stdout, "isatty", None)
    try:
        return bool(isatty and isatty())
    except ValueError:
        return False


def _null_logger() -> KVLogAdapter:
    adapter = KVLogAdapter(logging.getLogger("cloudquery.telemetry"))
    adapter.set_level(Level.NO_LEVEL)
    return adapter


def _otlp_value(value: Any) -> dict[str, Any]:
    if isinstance(value, bool):
        return {"boolValue": value}
    if isinstance(value, int):
        return {"intValue": str(value)}
    if isinstance(value, float):
        return {"doubleValue": value}
    return {"stringValue": str(value)}


def _otlp_attributes(attributes: Mapping[str, Any]) -> list[dict[str, Any]]:
    return [{"key": key, "value": _otlp_value(value)} for key, value in attributes.items()]


def _nanos(seconds: float | None) -> str:
    return str(int((seconds or 0.0) * 1_000_000_000))


class TelemetryClient:
    """Collects spans through a tracer and exports them on shutdown."""

    def __init__(
        self,
        *,
        version: str = "",
        commit: str = "",
        build_date: str = "",
        logger: Any = None,
        exporter: IO[str] | None = None,
        debug: bool = False,
        disabled: bool = False,
        endpoint: str = DEFAULT_ENDPOINT,
        insecure_endpoint: bool = False,
        resource: Mapping[str, Any] | None = None,
        data_dir: str | os.PathLike[str] = DEFAULT_DATA_DIR,
        home: str | os.PathLike[str] | None = None,
    ) -> None:
        self.version = version
        self.commit = commit
        self.build_date = build_date
        self._logger = logger if logger is not None else _null_logger()
        self._exporter = exporter
        self._debug = debug
        self._disabled = disabled
        self.endpoint = endpoint
        self.insecure_endpoint = insecure_endpoint
        self._data_dir = data_dir
        self._home = home
        self._err: BaseException | None = None
        self._new_random_id = False
        self._random_id = ""
        self._trace_id = os.urandom(16).hex()

        if resource is None:
            self._resource = self._default_resource()
        else:
            self._resource = dict(resource)

        self._tracer = Tracer(TRACER_NAME, recording=not disabled)

    @property
    def resource(self) -> dict[str, Any]:
        return dict(self._resource)

    def tracer(self) -> Tracer:
        """Return the client's tracer; activate it with ``tracing.use_tracer``."""
        return self._tracer

    def enabled(self) -> bool:
        return not self._disabled

    def has_error(self) -> BaseException | None:
        """Return the first error met while setting up or exporting, if any."""
        return self._err

    def new_random_id(self) -> bool:
        """True if this session created the persisted random id."""
        return self._new_random_id

    def random_id(self) -> str:
        return self._random_id

    def shutdown(self) -> None:
        """Export finished spans and close the exporter file, unless disabled."""
        if self._err is not None:
            self._logger.debug("telemetry error", "error", self._err)
        if self._disabled:
            return

        spans = [span for span in self._tracer.spans if span.ended]
        try:
            if self._exporter is not None:
                self._write_spans(spans)
            elif spans:
                self._post_spans(spans)
        except (OSError, requests.RequestException, ValueError) as exc:
            self._logger.debug("shutdown failed", "error", exc)

        if self._exporter is not None:
            try:
                self._exporter.close()
            except OSError as exc:
                self._logger.debug("close failed", "error", exc)

    def _set_error(self, err: BaseException | None) -> None:
        if err is None:
            return
        self._logger.debug("telemetry error occurred", "error", err)
        if self._err is None:
            self._err = err

    def _handle_export_error(self, err: BaseException) -> None:
        if self._debug:
            self._logger.warn("otel error occurred", "error", err)
        else:
            self._logger.debug("otel error occurred", "error", err)

    def _read_random_id(self) -> str:
        store = PersistentFile(
            RANDOM_ID_FILE, gen_random_id, data_dir=self._data_dir, home=self._home
        )
        try:
            value = store.get()
        except OSError as exc:
            self._logger.debug("randomId failed", "error", exc)
            return ""
        self._new_random_id = value.created
        return value.content

    def _default_resource(self) -> dict[str, Any]:
        rand_id = self._read_random_id()
        attrs: dict[str, Any] = {
            "service.name": "cloudquery",
            "service.version": self.version,
            "commit": self.commit,
            "build_date": self.build_date,
            "ci": is_ci(),
            "faas": is_faas(),
            "terminal": _is_terminal(),
        }
        if not self._new_random_id and rand_id:
            attrs["random_id_persisted"] = True
        if not rand_id:
            rand_id = gen_random_id()
        self._random_id = rand_id
        attrs["service.instance.id"] = rand_id

        try:
            hostname = socket.gethostname()
        except OSError:
            hostname = ""
        if hostname:
            attrs["host.name"] = hash_attribute(hostname)
        attrs.update(os_info())
        attrs.update(mac_host())

        attrs.update(
            {
                "telemetry.sdk.name": "cloudquery",
                "telemetry.sdk.language": "python",
                "process.runtime.name": platform.python_implementation().lower(),
                "process.runtime.version": platform.python_version(),
                "process.runtime.description": sys.version.replace("\n", " "),
            }
        )
        return attrs

    def _span_record(self, span: Span) -> dict[str, Any]:
        return {
            "Name": span.name,
            "StartTime": span.start_time,
            "EndTime": span.end_time,
            "Attributes": dict(span.attributes),
            "Status": {
                "Code": span.status_code.name.title(),
                "Description": span.status_description,
            },
            "Events": [
                {"Name": "exception", "Message": str(err), "Type": type(err).__name__}
                for err in span.errors
            ],
            "Resource": self._resource,
            "InstrumentationLibrary": {"Name": self._tracer.name},
        }

    def _write_spans(self, spans: list[Span]) -> None:
        assert self._exporter is not None
        for span in spans:
            self._exporter.write(json.dumps(self._span_record(span), indent="\t", default=str))
            self._exporter.write("\n")
        self._exporter.flush()

    def _otlp_span(self, span: Span) -> dict[str, Any]:
        return {
            "traceId": self._trace_id,
            "spanId": os.urandom(8).hex(),
            "name": span.name,
            "kind": 2,
            "startTimeUnixNano": _nanos(span.start_time),
            "endTimeUnixNano": _nanos(span.end_time),
            "attributes": _otlp_attributes(span.attributes),
            "events": [
                {
                    "name": "exception",
                    "timeUnixNano": _nanos(span.end_time),
                    "attributes": _otlp_attributes(
                        {"exception.type": type(err).__name__, "exception.message": str(err)}
                    ),
                }
                for err in span.errors
            ],
            "status": {
                "code": _OTLP_STATUS[span.status_code],
                "message": span.status_description,
            },
        }

    def _post_spans(self, spans: list[Span]) -> None:
        scheme = "http" if self.insecure_endpoint else "https"
        payload = {
            "resourceSpans": [
                {
                    "resource": {"attributes": _otlp_attributes(self._resource)},
                    "scopeSpans": [
                        {
                            "scope": {"name": self._tracer.name},
                            "spans": [self._otlp_span(span) for span in spans],
                        }
                    ],
                }
            ]
        }
        body = json.dumps(payload, default=str)
        try:
            response = requests.post(
                f"{scheme}://{self.endpoint}/v1/traces",
                data=body,
                headers={"Content-Type": "application/json"},
                timeout=TIMEOUT,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            self._handle_export_error(exc)
            raise