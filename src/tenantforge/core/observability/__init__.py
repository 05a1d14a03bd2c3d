"""Observability module for tracing.

Provides OpenTelemetry integration for the API and the sweep worker.
"""

from tenantforge.core.observability.tracing import (
    get_tracer,
    instrument_sqlalchemy,
    setup_tracing,
    shutdown_tracing,
)


__all__ = ["get_tracer", "instrument_sqlalchemy", "setup_tracing", "shutdown_tracing"]
