"""OpenTelemetry spans for stream reads.

Tracing is off until :func:`instrument` is called.  ``opentelemetry-api``
is an optional extra (``chatstream[otel]``); without it every helper in
this module is a no-op and reads behave the same.
"""

import importlib.util
import logging
from contextlib import asynccontextmanager

logger = logging.getLogger(__name__)

_tracer = None


def instrument(*, tracer_name: str = "chatstream") -> None:
    """Start emitting one span per stream read.

    Set up the global TracerProvider first, otherwise the spans go
    nowhere::

        from opentelemetry import trace
        from opentelemetry.sdk.trace import TracerProvider

        trace.set_tracer_provider(TracerProvider())
        chatstream.instrument()

    Args:
        tracer_name: Instrumentation scope handed to ``get_tracer``.

    Raises:
        ImportError: When the ``otel`` extra is missing.
    """
    global _tracer
    if importlib.util.find_spec("opentelemetry.trace") is None:
        raise ImportError(
            "Tracing needs opentelemetry-api: pip install chatstream[otel]"
        )
    from opentelemetry import trace

    tracer = trace.get_tracer(tracer_name)
    if isinstance(tracer, trace.NoOpTracer):
        logger.info(
            "No TracerProvider configured; read spans will be dropped "
            "until one is installed."
        )
    else:
        logger.info(f"Stream read tracing enabled ({tracer_name})")
    _tracer = tracer


def uninstrument() -> None:
    """Stop emitting spans."""
    global _tracer
    _tracer = None


@asynccontextmanager
async def read_span(provider: str):
    """Span covering one read, or ``None`` when tracing is off."""
    if _tracer is None:
        yield None
        return
    from opentelemetry.trace import SpanKind

    attributes = {
        "gen_ai.operation.name": "chat",
        "gen_ai.provider.name": provider,
    }
    with _tracer.start_as_current_span(
        f"read_stream {provider}", kind=SpanKind.CLIENT, attributes=attributes,
    ) as span:
        yield span


def record_usage(span, input_tokens: int, output_tokens: int) -> None:
    if span is None:
        return
    span.set_attribute("gen_ai.usage.input_tokens", input_tokens)
    span.set_attribute("gen_ai.usage.output_tokens", output_tokens)


def record_tool(span, tool_name: str) -> None:
    if span is not None:
        span.set_attribute("gen_ai.tool.name", tool_name)


def record_error(span, error: BaseException) -> None:
    """Mark *span* failed and attach *error* to it."""
    if span is None:
        return
    from opentelemetry.trace import StatusCode

    span.record_exception(error)
    span.set_status(StatusCode.ERROR, str(error))
    span.set_attribute("error.type", type(error).__name__)
