import logging
import sys
import uuid
from contextvars import ContextVar

# Context var storing the id of the HTTP request being served. Empty string outside a request.
current_request_id: ContextVar[str] = ContextVar("current_request_id", default="")

REQUEST_ID_HEADER = "X-Request-Id"

try:
    # Importing here to avoid hard dependency; used only when available
    from opentelemetry import trace as otel_trace  # type: ignore
except Exception:  # pragma: no cover - optional dep
    otel_trace = None  # type: ignore


def setup_logging(level: str = "INFO") -> None:
    # Keep outbound HTTP client chatter out of request logs
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("azure").setLevel(logging.WARNING)

    # Every LogRecord carries request_id even when the filter did not run
    _install_log_record_factory()

    root = logging.getLogger()
    if root.handlers:
        return  # already configured
    handler = logging.StreamHandler(sys.stdout)
    formatter = logging.Formatter(
        fmt="%(asctime)s %(levelname)s %(name)s request=%(request_id)s %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S%z",
    )
    handler.setFormatter(formatter)
    root.addHandler(handler)
    root.setLevel(level.upper())


class _TraceContextFilter(logging.Filter):
    """Injects trace_id, span_id and request_id into LogRecord if available.

    Always sets the attributes to strings to keep formatters safe.
    """

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003 - logging API
        trace_id = ""
        span_id = ""
        try:
            if otel_trace is not None:
                span = otel_trace.get_current_span()
                ctx = span.get_span_context() if span else None
                if ctx and getattr(ctx, "trace_id", None):
                    # Format as 32-char hex per W3C TraceContext
                    trace_id = f"{ctx.trace_id:032x}"
                    span_id = f"{ctx.span_id:016x}"
        except Exception:
            trace_id = ""
            span_id = ""
        setattr(record, "trace_id", trace_id)
        setattr(record, "span_id", span_id)
        setattr(record, "request_id", current_request_id.get())
        return True


def attach_trace_log_filter() -> None:
    """Attach the trace context filter to the root handler(s).

    Safe to call multiple times.
    """
    root = logging.getLogger()
    filt = _TraceContextFilter()
    for h in root.handlers:
        if not any(isinstance(f, _TraceContextFilter) for f in getattr(h, "filters", [])):
            h.addFilter(filt)


_original_factory = logging.getLogRecordFactory()


def _install_log_record_factory() -> None:
    factory = logging.getLogRecordFactory()
    if getattr(factory, "__name__", "") == "_request_inject_factory":  # already installed
        return

    def _request_inject_factory(*args, **kwargs):  # type: ignore[no-untyped-def]
        record = _original_factory(*args, **kwargs)  # type: ignore[misc]
        # Assigned after creation so a caller's extra={"request_id": ...} never collides.
        record.request_id = current_request_id.get()  # type: ignore[attr-defined]
        return record

    _request_inject_factory.__name__ = "_request_inject_factory"  # for idempotence check
    logging.setLogRecordFactory(_request_inject_factory)


def request_logging_middleware(app):  # type: ignore[no-untyped-def]
    """Install a middleware that tags every log line of a request with its id.

    Honors an incoming X-Request-Id header, otherwise generates one, and echoes
    it back on the response.
    """

    @app.middleware("http")
    async def _request_log(request, call_next):  # type: ignore[no-redef]
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:12]
        token = current_request_id.set(request_id)
        try:
            response = await call_next(request)
        finally:
            current_request_id.reset(token)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response

    return app
