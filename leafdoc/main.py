"""
Leafdoc AI Service - FastAPI Backend
Gemini-powered plant leaf diagnosis and plant-care chat

Architecture:
  - /analyze: leaf photo -> Gemini vision -> JSON extraction -> DiagnosisRecord
  - /chat:    message + report context + history -> Gemini chat session -> reply
"""
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, File, Form, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .diagnosis import Rejection, extract_diagnosis
from .errors import ExtractionError, GatewayError, InvalidRequestError
from .gemini_gateway import CompletionGateway, GeminiGateway
from .history import normalize_history
from .input_sanitization import (
    detect_image_type,
    sanitize_filename,
    sanitize_language,
    sanitize_message,
)
from .models import ChatRequest, ChatResponse, DiagnosisRecord, ErrorResponse, ReportContext
from .prompts import build_analyze_prompt, build_chat_instruction
from .settings import Settings
from .structured_logging import StructuredLogger, bind_request_id, log_request, setup_logging

logger = StructuredLogger("leafdoc.api")

CHAT_FAILED_MESSAGE = "Chat service unavailable"
ANALYSIS_FAILED_MESSAGE = "AI analysis failed"
QUIET_PATHS = {"/health", "/docs", "/openapi.json"}
NO_IMAGE_MESSAGE = "No image file uploaded"

CHAT_RESPONSES = {
    400: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}
ANALYZE_RESPONSES = {
    400: {"model": ErrorResponse},
    409: {"model": ErrorResponse, "description": "Not a plant leaf image"},
    413: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


def _set_outcome(request: Request, outcome: str) -> None:
    """Record what the route concluded, for the access log."""
    request.state.outcome = outcome


def get_gateway(request: Request) -> Optional[CompletionGateway]:
    return request.app.state.gateway


def create_app(settings: Optional[Settings] = None, gateway: Optional[CompletionGateway] = None) -> FastAPI:
    """Build the API. Pass a gateway to skip creating the Gemini client."""
    settings = settings or Settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting Leafdoc AI Service...")
        if app.state.gateway is None:
            try:
                app.state.gateway = GeminiGateway(settings).initialize()
            except RuntimeError as e:
                logger.warning(f"Gemini gateway not available: {e}")
                logger.warning("Chat and analysis requests will fail until an API key is configured.")
        logger.info("Ready to serve requests.")
        yield
        logger.info("Shutting down...")

    app = FastAPI(
        title="Leafdoc AI Service",
        description="Gemini-powered plant leaf diagnosis and plant-care chat API",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.gateway = gateway
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials="*" not in settings.cors_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type", "X-Request-ID"],
    )

    @app.middleware("http")
    async def request_logging_middleware(request: Request, call_next):
        """Middleware for request ID tracking and logging."""
        start_time = time.time()
        request_id = bind_request_id(request.headers.get("X-Request-ID"))

        response = await call_next(request)

        if request.url.path not in QUIET_PATHS:
            log_request(
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=(time.time() - start_time) * 1000,
                outcome=getattr(request.state, "outcome", None),
                client_host=request.client.host if request.client else None,
            )

        response.headers["X-Request-ID"] = request_id
        return response

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        _set_outcome(request, "invalid")
        errors = exc.errors()
        if not errors:
            return _error("Invalid request", 400)
        first = errors[0]
        loc = tuple(first.get("loc", ()))
        # A text field named "image" is not a file upload
        if loc[:2] == ("body", "image"):
            return _error(NO_IMAGE_MESSAGE, 400)
        location = ".".join(str(part) for part in loc if part != "body")
        message = first.get("msg", "Invalid request")
        return _error(f"{location}: {message}" if location else message, 400)

    @app.get("/health")
    async def health(gateway: Optional[CompletionGateway] = Depends(get_gateway)):
        return {
            "status": "healthy",
            "gateway": gateway is not None,
            "model": settings.gemini_model,
        }

    @app.post("/chat", response_model=ChatResponse, responses=CHAT_RESPONSES)
    async def chat(
        body: ChatRequest,
        request: Request,
        gateway: Optional[CompletionGateway] = Depends(get_gateway),
    ):
        """Answer a plant-care question about a diagnosis report."""
        try:
            message = sanitize_message(body.message)
        except InvalidRequestError as e:
            _set_outcome(request, "invalid")
            return _error(e.public_message, e.status_code)
        if not message:
            _set_outcome(request, "invalid")
            return _error("Message is required", 400)

        context = body.report_context or ReportContext()
        history = normalize_history(body.history)
        logger.info(
            "chat request",
            message_chars=len(message),
            history_turns=len(history),
            dropped_turns=len(body.history or []) - len(history),
        )

        try:
            if gateway is None:
                raise GatewayError("Gemini gateway not configured")
            reply = await gateway.complete_chat(build_chat_instruction(context), history, message)
        except GatewayError as e:
            logger.error("chat failed", error=str(e))
            _set_outcome(request, "error")
            return _error(CHAT_FAILED_MESSAGE, 500)
        except Exception as e:
            logger.exception("chat failed unexpectedly", error=str(e))
            _set_outcome(request, "error")
            return _error(CHAT_FAILED_MESSAGE, 500)

        _set_outcome(request, "reply")
        return ChatResponse(reply=reply)

    @app.post("/analyze", response_model=DiagnosisRecord, responses=ANALYZE_RESPONSES)
    async def analyze(
        request: Request,
        image: Optional[UploadFile] = File(None),
        language: Optional[str] = Form(None),
        gateway: Optional[CompletionGateway] = Depends(get_gateway),
    ):
        """Diagnose a plant leaf photo."""
        if image is None:
            _set_outcome(request, "invalid")
            return _error(NO_IMAGE_MESSAGE, 400)

        start_time = time.time()
        raw_text = ""
        try:
            image_bytes = await image.read()
            if not image_bytes:
                raise InvalidRequestError(NO_IMAGE_MESSAGE)
            if len(image_bytes) > settings.max_image_bytes:
                raise InvalidRequestError(
                    f"Image exceeds {settings.max_image_bytes} bytes", status_code=413
                )
            mime_type = detect_image_type(image_bytes, declared_type=image.content_type)
            logger.info(
                "analyze request",
                filename=sanitize_filename(image.filename),
                mime_type=mime_type,
                size_bytes=len(image_bytes),
            )

            if gateway is None:
                raise GatewayError("Gemini gateway not configured")
            prompt = build_analyze_prompt(sanitize_language(language))
            raw_text = await gateway.complete_vision(prompt, image_bytes, mime_type)
            outcome = extract_diagnosis(raw_text)
        except InvalidRequestError as e:
            _set_outcome(request, "invalid")
            return _error(e.public_message, e.status_code)
        except ExtractionError as e:
            logger.error("analysis extraction failed", error=str(e), raw_text=raw_text[:1000])
            _set_outcome(request, "error")
            return _error(ANALYSIS_FAILED_MESSAGE, 500)
        except GatewayError as e:
            logger.error("analysis failed", error=str(e))
            _set_outcome(request, "error")
            return _error(ANALYSIS_FAILED_MESSAGE, 500)
        except Exception as e:
            logger.exception("analysis failed unexpectedly", error=str(e))
            _set_outcome(request, "error")
            return _error(ANALYSIS_FAILED_MESSAGE, 500)
        finally:
            await image.close()

        duration_ms = round((time.time() - start_time) * 1000, 2)
        if isinstance(outcome, Rejection):
            logger.info("analyze rejected: not a plant leaf", duration_ms=duration_ms)
            _set_outcome(request, "rejection")
            return _error(outcome.message, 409)

        logger.info(
            "analyze completed",
            duration_ms=duration_ms,
            plant=outcome.plant_name,
            disease=outcome.disease,
        )
        _set_outcome(request, "diagnosis")
        return JSONResponse(outcome.model_dump(by_alias=True))

    return app


settings = Settings.from_env()
setup_logging(level=settings.log_level_value, use_json=settings.log_json)
app = create_app(settings)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.host, port=settings.port)
