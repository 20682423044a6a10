from opentelemetry import trace
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import ConsoleSpanExporter, SimpleSpanProcessor
from starlette.routing import Match

UNMATCHED_ROUTE = "<unmatched>"

# Attributes the ASGI instrumentation fills from the concrete URL.
# Tokens travel in paths and query strings, so these carry the route template instead.
URL_ATTRIBUTES = ("http.target", "http.url", "url.path", "url.full")
QUERY_ATTRIBUTES = ("url.query",)


def route_template(app, scope) -> str:
    """Path template of the route serving ``scope``, e.g. ``/api/notes/{note_id}``."""
    partial = None
    for route in app.routes:
        match, _ = route.matches(scope)
        if match == Match.FULL:
            return route.path
        if match == Match.PARTIAL and partial is None:
            partial = route.path
    return partial or UNMATCHED_ROUTE


def scrub_request_span(app):
    """Build a server_request_hook that replaces raw URLs on the server span."""
    def hook(span, scope):
        if span is None or not span.is_recording():
            return
        template = route_template(app, scope)
        recorded = getattr(span, "attributes", None) or {}
        for key in URL_ATTRIBUTES:
            if key in recorded:
                span.set_attribute(key, template)
        for key in QUERY_ATTRIBUTES:
            if key in recorded:
                span.set_attribute(key, "")
    return hook


def instrument_app(app, tracer_provider=None):
    FastAPIInstrumentor.instrument_app(
        app,
        tracer_provider=tracer_provider,
        server_request_hook=scrub_request_span(app),
    )


def init_otel(app=None, engine=None, service_name: str = "microtools"):
    """Initialize OpenTelemetry tracing with console exporter.

    Pass FastAPI app and SQLAlchemy async engine to instrument automatically.
    """
    resource = Resource.create({"service.name": service_name})
    provider = TracerProvider(resource=resource)
    trace.set_tracer_provider(provider)

    provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))

    if app is not None:
        instrument_app(app, provider)

    if engine is not None:
        SQLAlchemyInstrumentor().instrument(engine=engine.sync_engine)

    return trace.get_tracer(service_name)
