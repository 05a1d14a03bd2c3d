"""OpenTelemetry tracing configuration.

The API process instruments FastAPI, SQLAlchemy and Redis. The worker
process calls ``setup_tracing`` without an app so provisioning and sweep
spans are still exported.
"""

import structlog
from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.redis import RedisInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from sqlalchemy.ext.asyncio import AsyncEngine

from tenantforge import __version__
from tenantforge.config import Settings, get_settings


log = structlog.get_logger()


def setup_tracing(
    app: FastAPI | None = None,
    config: Settings | None = None,
    service_suffix: str = "api",
) -> bool:
    """Configure the global tracer provider.

    Args:
        app: FastAPI application to instrument, if any
        config: Settings to read the exporter from
        service_suffix: Distinguishes the API from the worker in traces

    Returns:
        True if a span exporter was installed
    """
    config = config or get_settings()
    resource = Resource.create(
        {
            "service.name": f"{config.app_name.lower().replace(' ', '-')}-{service_suffix}",
            "service.version": __version__,
            "deployment.environment": config.environment,
        }
    )
    provider = TracerProvider(resource=resource)

    if config.otlp_endpoint:
        exporter = OTLPSpanExporter(
            endpoint=config.otlp_endpoint,
            insecure=not config.otlp_endpoint.startswith("https"),
        )
        provider.add_span_processor(BatchSpanProcessor(exporter))
        log.info("tracing_configured", exporter="otlp", endpoint=config.otlp_endpoint)
    elif config.debug:
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
        log.info("tracing_configured", exporter="console")
    else:
        log.info("tracing_disabled", reason="no OTLP_ENDPOINT configured")
        return False

    trace.set_tracer_provider(provider)

    if app is not None:
        FastAPIInstrumentor.instrument_app(
            app,
            excluded_urls="health/.*,docs,redoc,openapi.json",
        )
        log.debug("instrumented_fastapi")

    RedisInstrumentor().instrument()
    log.debug("instrumented_redis")
    return True


def instrument_sqlalchemy(engine: AsyncEngine) -> None:
    """Instrument a database engine, after it has been created."""
    SQLAlchemyInstrumentor().instrument(engine=engine.sync_engine)
    log.debug("instrumented_sqlalchemy")


def get_tracer(name: str) -> trace.Tracer:
    """Get a tracer instance for manual span creation.

    Example:
        tracer = get_tracer(__name__)
        with tracer.start_as_current_span("tenant.provision"):
            ...
    """
    return trace.get_tracer(name)


def shutdown_tracing() -> None:
    """Flush pending spans."""
    provider = trace.get_tracer_provider()
    if isinstance(provider, TracerProvider):
        provider.shutdown()
        log.info("tracing_shutdown_complete")
