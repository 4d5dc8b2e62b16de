import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import Body, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from vrise_intake.config import Settings, get_settings
from vrise_intake.db.models import Envelope
from vrise_intake.db.store import RecordStore, connect_store
from vrise_intake.emails.notifier import Notifier
from vrise_intake.exceptions import PersistenceError, ValidationError
from vrise_intake.logging_config import configure_logging
from vrise_intake.workflow import (
    FEEDBACK, INTERNSHIP_APPLICATION, MOCK_INTERVIEW_BOOKING, FormSchema, IntakeWorkflow
)

logger = logging.getLogger(__name__)

HTTP_MESSAGES = {
    status.HTTP_404_NOT_FOUND: "Route not found",
    status.HTTP_405_METHOD_NOT_ALLOWED: "Method not allowed",
}


class SubmissionFailed(Exception):
    """A PersistenceError bound to the form-specific failure message."""

    def __init__(self, schema: FormSchema, cause: PersistenceError):
        super().__init__(cause.message)
        self.schema = schema
        self.cause = cause


def envelope(status_code: int, success: bool, message: str, data: Optional[Dict[str, Any]] = None) -> JSONResponse:
    body = Envelope(success=success, message=message, data=data)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


def create_app(settings: Optional[Settings] = None,
               store: Optional[RecordStore] = None,
               notifier: Optional[Notifier] = None) -> FastAPI:
    """Build the intake API.

    Settings are read once here; the store and notifier can be passed in
    (tests do this), otherwise they are built from the settings.
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    store = store or connect_store(settings)
    notifier = notifier or Notifier(settings)
    workflow = IntakeWorkflow(store, notifier)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # refuse to start without a reachable store
        store.ping()
        logger.info("Connected to MongoDB")
        yield
        store.close()

    app = FastAPI(
        title="V Rise Intake API",
        description="Stores internship applications, mock interview bookings and feedback",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.workflow = workflow

    # Middleware added later wraps earlier ones; CORS must stay outermost so
    # every envelope, including 413 and 500, carries the CORS headers.

    @app.middleware("http")
    async def catch_unexpected_errors(request: Request, call_next):
        try:
            return await call_next(request)
        except Exception:
            logger.exception(f"Unexpected error on {request.method} {request.url.path}")
            return envelope(status.HTTP_500_INTERNAL_SERVER_ERROR, False, "Internal server error")

    @app.middleware("http")
    async def limit_body_size(request: Request, call_next):
        content_length = request.headers.get("content-length")
        if content_length and content_length.isdigit() and int(content_length) > settings.max_body_bytes:
            return envelope(status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, False, "Request body too large")
        return await call_next(request)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    # Error envelopes

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        return envelope(status.HTTP_400_BAD_REQUEST, False, exc.message)

    @app.exception_handler(SubmissionFailed)
    async def handle_submission_failed(request: Request, exc: SubmissionFailed):
        logger.error(f"{exc.schema.kind.value} not saved: {exc.cause.message}")
        return envelope(status.HTTP_500_INTERNAL_SERVER_ERROR, False, exc.schema.failure_message)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        return envelope(status.HTTP_400_BAD_REQUEST, False, "Request body must be valid JSON.")

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        message = HTTP_MESSAGES.get(exc.status_code, str(exc.detail))
        return envelope(exc.status_code, False, message)

    # Routes

    def submit(schema: FormSchema, payload: Any) -> JSONResponse:
        try:
            receipt = workflow.submit(schema, payload)
        except PersistenceError as e:
            raise SubmissionFailed(schema, e) from e
        return envelope(status.HTTP_200_OK, True, schema.success_message, receipt.model_dump(by_alias=True))

    @app.get("/api/health")
    def health_check():
        return envelope(status.HTTP_200_OK, True, "OK")

    @app.post("/api/internships/applications")
    def submit_internship_application(payload: Any = Body(...)):
        """Store an internship application and acknowledge it by email."""
        return submit(INTERNSHIP_APPLICATION, payload)

    @app.post("/api/mock-interviews")
    def submit_mock_interview(payload: Any = Body(...)):
        """Store a mock interview booking (with optional base64 resume)."""
        return submit(MOCK_INTERVIEW_BOOKING, payload)

    @app.post("/api/feedback")
    def submit_feedback(payload: Any = Body(...)):
        """Store a feedback entry and acknowledge it by email."""
        return submit(FEEDBACK, payload)

    return app


def run():
    import uvicorn

    settings = get_settings()
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
