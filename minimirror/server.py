from typing import Optional

import httpx
from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from prometheus_client import Info
from prometheus_fastapi_instrumentator import Instrumentator

from minimirror.models import MirrorConfig
from minimirror.proxy import ContentRewriter, MirrorService
from minimirror.routes import router
from minimirror.vars import METRICS_ENABLED, OTLP_ENDPOINT, OTLP_HEADERS, SERVICE_NAME


def configure_tracing() -> None:
    trace.set_tracer_provider(
        TracerProvider(resource=Resource.create({"service.name": SERVICE_NAME}))
    )
    if OTLP_ENDPOINT:
        otlp_exporter = OTLPSpanExporter(
            endpoint=OTLP_ENDPOINT,
            headers=((OTLP_HEADERS).split(",") if OTLP_HEADERS else None),
        )
        trace.get_tracer_provider().add_span_processor(
            BatchSpanProcessor(otlp_exporter)
        )


def create_app(
    config: Optional[MirrorConfig] = None,
    rewriter: Optional[ContentRewriter] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    instrument: bool = False,
) -> FastAPI:
    """
    Build the mirror application.

    The configuration is not validated here so that the liveness route keeps
    answering whatever the environment holds; ``python -m minimirror``
    validates before serving.
    """
    config = config or MirrorConfig.from_env()

    app = FastAPI(title=SERVICE_NAME)
    app.state.config = config
    app.state.mirror = MirrorService(config, rewriter=rewriter, transport=transport)

    if instrument:
        # /metrics has to be registered ahead of the catch-all mirror route
        if METRICS_ENABLED:
            Instrumentator().instrument(app).expose(app)
        FastAPIInstrumentor.instrument_app(app)

    app.include_router(router)
    return app


configure_tracing()

app = create_app(instrument=True)

app_info = Info("minimirror_app_info", "Application Info")
app_info.info(
    {"app_name": SERVICE_NAME, "target_domain": app.state.config.target_domain}
)
