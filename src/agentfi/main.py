import logging
from contextlib import asynccontextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

import uvicorn
from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .agent import AgentFiService, ChatModel
from .errors import AgentFiError
from .schemas import ChatRequest, ChatResponse, DashboardSnapshot, ErrorResponse
from .services.dashboard import DashboardService
from .services.tool_relay import ToolRelayClient
from .settings import get_settings

CHAT_ERROR = "An internal server error occurred."
DASHBOARD_ERROR = "Failed to fetch dashboard data."


def setup_server_logging() -> logging.Logger:
    """Configure and return the server logger."""
    logs_dir = Path("logs")
    logs_dir.mkdir(parents=True, exist_ok=True)

    # Handlers sit on the package logger so module loggers share them.
    logger = logging.getLogger("agentfi")
    if logger.handlers:
        return logging.getLogger("agentfi.server")

    logger.setLevel(get_settings().log_level)
    fmt = logging.Formatter("%(asctime)s %(levelname)s %(name)s - %(message)s")

    ch = logging.StreamHandler()
    ch.setFormatter(fmt)
    logger.addHandler(ch)

    fh = RotatingFileHandler(logs_dir / "server.log", maxBytes=5_000_000, backupCount=3)
    fh.setFormatter(fmt)
    logger.addHandler(fh)

    return logging.getLogger("agentfi.server")


def _cors_origins_list(origins: str) -> list[str]:
    """Parse CORS_ORIGINS into a list."""
    if not origins or origins.strip() == "*":
        return ["*"]
    return [o.strip() for o in origins.split(",") if o.strip()]


LOGGER = setup_server_logging()
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the shared tool relay and services at startup; close the relay on shutdown."""
    if not settings.gemini_api_key:
        LOGGER.warning("GEMINI_API_KEY is not set; chat requests will fail")

    relay = ToolRelayClient(
        base_url=settings.tool_service_url,
        timeout=settings.tool_request_timeout_seconds,
    )
    app.state.agent_service = AgentFiService.from_settings(
        settings, model=ChatModel.from_settings(settings), relay=relay
    )
    app.state.dashboard_service = DashboardService(relay)
    LOGGER.info("Tool service: %s, model: %s", settings.tool_service_url, settings.model)

    yield

    LOGGER.info("Shutting down...")
    await relay.aclose()


app = FastAPI(
    title="AgentFi Backend",
    version="0.1.0",
    debug=settings.debug,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins_list(settings.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_agent_service(request: Request) -> AgentFiService:
    return request.app.state.agent_service


def get_dashboard_service(request: Request) -> DashboardService:
    return request.app.state.dashboard_service


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    LOGGER.info("Rejected request to %s: %s", request.url.path, exc.errors())
    return JSONResponse(status_code=400, content={"error": "Invalid request."})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    LOGGER.exception("Unhandled error in %s: %s", request.url.path, exc)
    message = DASHBOARD_ERROR if request.url.path == "/api/dashboard" else CHAT_ERROR
    return JSONResponse(status_code=500, content={"error": message})


@app.get("/health")
async def health() -> dict[str, Any]:
    """Health check for load balancers and monitoring.

    Returns:
        dict[str, Any]: JSON response with status field.
    """
    return {"status": "ok"}


@app.post(
    "/api/chat",
    response_model=ChatResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def chat(
    payload: ChatRequest,
    agent: AgentFiService = Depends(get_agent_service),
) -> Any:
    """Chat endpoint: client sends { message, sessionId }, server replies once the model is done.

    Expected Input (JSON):
        {
            "message": str - user query text,
            "sessionId": str - session identifier, also forwarded to the tool service
        }

    Response Format:
        - 200 {"reply": str} - final model answer, code fences stripped
        - 400 {"error": str} - message or sessionId missing
        - 500 {"error": str} - any upstream or internal failure
    """
    if not payload.message or not payload.session_id:
        return JSONResponse(
            status_code=400, content={"error": "Message and sessionId are required."}
        )

    try:
        reply = await agent.run_chat(session_id=payload.session_id, user_message=payload.message)
    except AgentFiError as e:
        LOGGER.exception("Error in /api/chat: %s", e)
        return JSONResponse(status_code=500, content={"error": CHAT_ERROR})

    return ChatResponse(reply=reply)


@app.get(
    "/api/dashboard",
    response_model=DashboardSnapshot,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def dashboard(
    session_id: str | None = Query(default=None, alias="sessionId"),
    service: DashboardService = Depends(get_dashboard_service),
) -> Any:
    """Net worth, asset breakdown and credit score for the session's user."""
    if not session_id:
        return JSONResponse(status_code=400, content={"error": "sessionId is required."})

    try:
        return await service.get_snapshot(session_id)
    except AgentFiError as e:
        LOGGER.exception("Error in /api/dashboard: %s", e)
        return JSONResponse(status_code=500, content={"error": DASHBOARD_ERROR})


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    uvicorn.run(
        "agentfi.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
