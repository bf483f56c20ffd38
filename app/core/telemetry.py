"""
Telemetry configuration (Metrics & Tracing).
Sets up Prometheus instrumentation, recommendation metrics and OpenTelemetry.
"""
from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from prometheus_client import Counter, Histogram
from prometheus_fastapi_instrumentator import Instrumentator

from app.config import get_settings

# -----------------------------------------------------------------------------
# Recommendation metrics
# -----------------------------------------------------------------------------

SIMILAR_PROPERTIES_REQUESTS = Counter(
    "similar_properties_requests_total",
    "Similar-property requests by serving algorithm",
    ["algorithm"],
)

SIMILAR_PROPERTIES_LATENCY = Histogram(
    "similar_properties_latency_seconds",
    "Time spent producing similar-property recommendations",
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

CANDIDATE_TIER_FAILURES = Counter(
    "candidate_tier_failures_total",
    "Candidate retrieval tiers that failed and were treated as empty",
    ["tier"],
)


def record_recommendation(algorithm: str, elapsed_seconds: float) -> None:
    """Record one served similar-properties response."""
    SIMILAR_PROPERTIES_REQUESTS.labels(algorithm=algorithm).inc()
    SIMILAR_PROPERTIES_LATENCY.observe(elapsed_seconds)


def record_tier_failure(tier: str) -> None:
    CANDIDATE_TIER_FAILURES.labels(tier=tier).inc()


def setup_telemetry(app: FastAPI) -> None:
    """
    Setup Observability (Metrics & Tracing).

    1. Prometheus Metrics via /metrics
    2. OpenTelemetry Tracing via OTLP
    """
    settings = get_settings()

    # -------------------------------------------------------------------------
    # 1. Prometheus Metrics
    # -------------------------------------------------------------------------
    if settings.ENABLE_PROMETHEUS:
        instrumentator = Instrumentator(
            should_group_status_codes=False,
            should_ignore_untemplated=True,
            should_respect_env_var=True,
            should_instrument_requests_inprogress=True,
            excluded_handlers=["/metrics", "/health", "/health/ready"],
            env_var_name="ENABLE_METRICS",
            inprogress_name="inprogress",
            inprogress_labels=True,
        )
        instrumentator.instrument(app).expose(app, include_in_schema=False)

    # -------------------------------------------------------------------------
    # 2. OpenTelemetry Tracing
    # -------------------------------------------------------------------------
    if settings.ENABLE_OTEL:
        resource = Resource.create(attributes={
            "service.name": settings.APP_NAME,
            "service.version": settings.APP_VERSION,
            "deployment.environment": "production" if not settings.DEBUG else "development",
        })

        provider = TracerProvider(resource=resource)

        # OTLP Exporter, default endpoint is localhost:4317
        provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter()))

        trace.set_tracer_provider(provider)
        FastAPIInstrumentor.instrument_app(app, tracer_provider=provider)
