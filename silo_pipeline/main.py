from fastapi import FastAPI
from slowapi.middleware import SlowAPIMiddleware

from silo_pipeline.api.v1 import api_router
from silo_pipeline.core.errors import register_exception_handlers
from silo_pipeline.core.limiter import limiter
from silo_pipeline.core.logging import configure_logging
from silo_pipeline.core.response_envelope import register_response_envelope
from silo_pipeline.events import register_event_handlers
from silo_pipeline.middlewares.request_context import RequestContextMiddleware


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title="Silo Pipeline", version="0.1.0")
    register_exception_handlers(app)
    register_response_envelope(app)
    app.state.limiter = limiter
    app.add_middleware(SlowAPIMiddleware)
    app.add_middleware(RequestContextMiddleware)
    app.include_router(api_router, prefix="/api/v1")
    register_event_handlers(app)
    return app


app = create_app()
