"""OpenTelemetry tracing for the portal API.

Spans come from FastAPI, from the outgoing httpx calls to Firestore, Identity
Toolkit and Cloud Storage, from Redis when the change relay is on, and from
@traced. Exported with OTLP (any collector, Jaeger included) or to the console.
"""

import logging
import threading

from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.instrumentation.logging import LoggingInstrumentor
from opentelemetry.instrumentation.redis import RedisInstrumentor
from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter, SpanExporter
from opentelemetry.sdk.trace.sampling import TraceIdRatioBased

logger = logging.getLogger(__name__)

# Probes would otherwise dominate the trace volume.
EXCLUDED_URLS = "/api/health,/api/v1/health"


class TelemetryConfig:
    """Tracer provider plus the instrumentations the portal uses.

    Nothing here raises: a collector or instrumentation problem is logged and
    the API keeps serving without traces.
    """

    def __init__(
        self,
        service_name: str,
        service_version: str,
        enabled: bool = True,
        environment: str = "development",
    ) -> None:
        self.service_name = service_name
        self.service_version = service_version
        self.enabled = enabled
        self.environment = environment
        self.tracer_provider: TracerProvider | None = None

    @staticmethod
    def _exporter(exporter_type: str, otlp_endpoint: str | None) -> SpanExporter | None:
        if exporter_type == "otlp" and otlp_endpoint:
            logger.info("Using OTLP span exporter: %s", otlp_endpoint)
            return OTLPSpanExporter(
                endpoint=otlp_endpoint, insecure=otlp_endpoint.startswith("http://")
            )
        if exporter_type == "none":
            return None
        if exporter_type != "console":
            logger.warning("Unknown exporter type '%s', using console", exporter_type)
        return ConsoleSpanExporter()

    def setup_telemetry(
        self,
        exporter_type: str = "console",
        otlp_endpoint: str | None = None,
        sample_rate: float = 1.0,
    ) -> TracerProvider | None:
        """Create the tracer provider and make it global.

        Args:
            exporter_type: "console", "otlp", or "none" (spans are created but dropped).
            otlp_endpoint: OTLP gRPC endpoint (e.g. http://localhost:4317).
            sample_rate: Sampling rate between 0.0 and 1.0.

        Returns:
            TracerProvider or None if disabled or setup failed.
        """
        if not self.enabled:
            logger.info("Telemetry disabled")
            return None
        try:
            provider = TracerProvider(
                resource=Resource(
                    attributes={
                        SERVICE_NAME: self.service_name,
                        SERVICE_VERSION: self.service_version,
                        "deployment.environment": self.environment,
                    }
                ),
                sampler=TraceIdRatioBased(sample_rate),
            )
            exporter = self._exporter(exporter_type, otlp_endpoint)
            if exporter is not None:
                provider.add_span_processor(BatchSpanProcessor(exporter))
            trace.set_tracer_provider(provider)
        except Exception as e:
            logger.exception("Failed to initialize telemetry: %s", e)
            return None
        self.tracer_provider = provider
        logger.info(
            "OpenTelemetry initialized: service=%s, version=%s, exporter=%s",
            self.service_name,
            self.service_version,
            exporter_type,
        )
        return provider

    def instrument(self, app: FastAPI, *, redis: bool = False) -> None:
        """Instrument FastAPI, httpx and logging, and Redis when the relay is enabled."""
        if not self.enabled or not self.tracer_provider:
            return
        provider = self.tracer_provider
        steps = [
            ("FastAPI", lambda: FastAPIInstrumentor.instrument_app(
                app, tracer_provider=provider, excluded_urls=EXCLUDED_URLS
            )),
            ("httpx", lambda: HTTPXClientInstrumentor().instrument(tracer_provider=provider)),
            ("logging", lambda: LoggingInstrumentor().instrument(
                tracer_provider=provider, set_logging_format=True
            )),
        ]
        if redis:
            steps.append(("Redis", lambda: RedisInstrumentor().instrument(tracer_provider=provider)))
        for name, step in steps:
            try:
                step()
            except Exception as e:
                logger.exception("Failed to instrument %s: %s", name, e)
            else:
                logger.info("%s instrumentation enabled", name)

    def shutdown(self) -> None:
        """Flush remaining spans and stop the provider."""
        if self.tracer_provider:
            try:
                self.tracer_provider.shutdown()
                logger.info("Telemetry shutdown complete")
            except Exception as e:
                logger.exception("Error during telemetry shutdown: %s", e)


_telemetry: TelemetryConfig | None = None
_telemetry_lock = threading.RLock()


def get_telemetry() -> TelemetryConfig | None:
    """Return the global telemetry instance (set at startup)."""
    with _telemetry_lock:
        return _telemetry


def set_telemetry(telemetry: TelemetryConfig) -> None:
    """Set the global telemetry instance. Called once at startup."""
    global _telemetry
    with _telemetry_lock:
        _telemetry = telemetry
