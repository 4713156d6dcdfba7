"""
vectorchat Server

FastAPI server exposing the ask operation.

Endpoints:
- POST /ask: Answer a question about a vector collection
- GET /connection: Vector store connectivity check

Errors from the vectorchat taxonomy are returned with their status code and
a correlation id that also appears in the server log.
"""

import logging
import uuid
from contextlib import asynccontextmanager
from typing import Dict, Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ..common.config import configure_logging, load_config
from ..common.errors import VectorChatError
from ..common.schemas.query import NaturalQueryRequest, NaturalQueryResponse
from .controller import QueryController, build_controller

logger = logging.getLogger("vectorchat.api.server")

CORRELATION_HEADER = "X-Correlation-ID"


def create_app(controller: Optional[QueryController] = None) -> FastAPI:
    """Build the app; without a controller one is wired from config at startup"""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.controller is None:
            load_dotenv()
            config = load_config()
            configure_logging(config.server.log_level)
            app.state.controller = build_controller(config)
            logger.info("Controller ready (endpoint: %s)", config.vector_store.endpoint)
        yield
        logger.info("Shutting down")

    app = FastAPI(
        title="vectorchat",
        description="Conversational questions over vector collections",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.controller = controller

    @app.exception_handler(VectorChatError)
    async def handle_vectorchat_error(request: Request, exc: VectorChatError) -> JSONResponse:
        correlation_id = request.headers.get(CORRELATION_HEADER) or uuid.uuid4().hex
        logger.warning("[%s] %s: %s", correlation_id, exc.code, exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": exc.message,
                "code": exc.code,
                "correlation_id": correlation_id,
                "metadata": exc.metadata,
            },
            headers={CORRELATION_HEADER: correlation_id},
        )

    @app.post("/ask", response_model=NaturalQueryResponse)
    async def ask(body: NaturalQueryRequest, request: Request) -> NaturalQueryResponse:
        return await request.app.state.controller.handle_natural_query(body)

    @app.get("/connection")
    async def connection(request: Request) -> Dict[str, bool]:
        return await request.app.state.controller.test_connection()

    return app


app = create_app()


def run_server():
    """Run the vectorchat server"""
    import uvicorn

    load_dotenv()
    config = load_config()
    configure_logging(config.server.log_level)

    logger.info("Starting server on %s:%d", config.server.host, config.server.port)
    uvicorn.run(
        "vectorchat.api.server:app",
        host=config.server.host,
        port=config.server.port,
        log_level=config.server.log_level,
        reload=False,
    )


if __name__ == "__main__":
    run_server()
