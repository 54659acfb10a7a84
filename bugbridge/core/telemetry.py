"""Optional Azure Monitor export for the bridge.

Outbound tracker calls are tagged with the BugHerd endpoint and project, and
the services count imported rows and exported records. Everything degrades to
a no-op when the OpenTelemetry packages are not installed.
"""

from __future__ import annotations

import logging
import re
from importlib import metadata
from typing import Any

from fastapi import FastAPI

from .config import Settings
from .logging import attach_trace_log_filter

log = logging.getLogger(__name__)

METER_NAME = "bugbridge"
ROWS_COUNTER = "bugbridge.import.rows"
RECORDS_COUNTER = "bugbridge.report.records"

_PROJECT_PATH = re.compile(r"/projects/(?P<project>\d+)(?P<rest>(?:/[^/]+)*?)(?:\.json)?$")
_NUMERIC_SEGMENT = re.compile(r"/\d+(?=/|$)")

# Created lazily on first use; tests may pre-seed it
_counters: dict[str, Any] = {}


def _get_package_version(default: str = "0.0.0") -> str:
    try:
        return metadata.version("bugbridge")
    except metadata.PackageNotFoundError:  # pragma: no cover - source checkout
        return default


def tracker_span_attributes(path: str) -> dict[str, str]:
    """Describe a BugHerd API path as span attributes.

    ``/api_v2/projects/42/tasks/7.json`` becomes endpoint
    ``projects/{id}/tasks/{id}`` with project ``42``.
    """
    match = _PROJECT_PATH.search(path)
    if match is None:
        endpoint = path.rsplit("/", 1)[-1].removesuffix(".json")
        return {"bugherd.endpoint": endpoint} if endpoint else {}
    rest = _NUMERIC_SEGMENT.sub("/{id}", match.group("rest"))
    return {
        "bugherd.endpoint": "projects/{id}" + rest,
        "bugherd.project_id": match.group("project"),
    }


async def _tracker_request_hook(span: Any, request: Any) -> None:
    if span is None or not span.is_recording():
        return
    for key, value in tracker_span_attributes(request.url.path).items():
        span.set_attribute(key, value)


def _counter(name: str, description: str) -> Any | None:
    counter = _counters.get(name)
    if counter is not None:
        return counter
    try:
        from opentelemetry import metrics
    except ImportError:  # pragma: no cover - optional dep
        return None
    counter = metrics.get_meter(METER_NAME, _get_package_version()).create_counter(
        name, unit="1", description=description
    )
    _counters[name] = counter
    return counter


def record_import_rows(project_id: str, created: int, failed: int) -> None:
    counter = _counter(ROWS_COUNTER, "Spreadsheet rows sent to the tracker")
    if counter is None:
        return
    if created:
        counter.add(created, {"project_id": project_id, "outcome": "created"})
    if failed:
        counter.add(failed, {"project_id": project_id, "outcome": "failed"})


def record_report_records(project_id: str, kind: str, count: int) -> None:
    counter = _counter(RECORDS_COUNTER, "Normalised records written into reports")
    if counter is None:
        return
    counter.add(count, {"project_id": project_id, "report": kind})


def _build_resource(settings: Settings):
    try:
        from opentelemetry.sdk.resources import Resource
        from opentelemetry.semconv.resource import ResourceAttributes
    except ImportError as e:  # pragma: no cover - optional dep
        log.debug("OpenTelemetry SDK not available for Resource: %s", e)
        return None

    return Resource.create(
        {
            ResourceAttributes.SERVICE_NAME: settings.SERVICE_NAME,
            ResourceAttributes.SERVICE_VERSION: _get_package_version("0.1.0"),
            "bugherd.api_base": settings.TRACKER_BASE_URL,
        }
    )


def init_telemetry(app: FastAPI, settings: Settings) -> bool:
    """Wire Azure Monitor exporters when enabled and a connection string is set.

    Returns True when exporters were configured. Never raises.
    """
    if not settings.AZ_MONITOR_ENABLED:
        return False
    secret = settings.AZ_MONITOR_CONNECTION_STRING
    conn_str = secret.get_secret_value() if secret else None
    if not conn_str:
        log.info("telemetry.skipped reason=no-connection-string")
        return False

    try:
        # Imports are inside so the app can start without these deps installed
        from azure.monitor.opentelemetry import configure_azure_monitor
        from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
        from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
        from opentelemetry.instrumentation.logging import LoggingInstrumentor
    except ImportError as e:
        log.warning("telemetry.skipped reason=missing-packages: %s", e)
        return False

    try:
        options: dict[str, Any] = {"connection_string": conn_str}
        resource = _build_resource(settings)
        if resource is not None:
            options["resource"] = resource
        configure_azure_monitor(**options)
        FastAPIInstrumentor().instrument_app(app, excluded_urls="healthz")
        HTTPXClientInstrumentor().instrument(async_request_hook=_tracker_request_hook)
        LoggingInstrumentor().instrument(set_logging_format=False)
    except Exception as e:  # pragma: no cover - fail-soft
        log.warning("Telemetry initialization failed; continuing without exporters: %s", e)
        return False

    attach_trace_log_filter()
    log.info("telemetry.enabled service=%s", settings.SERVICE_NAME)
    return True
