# tutorlink/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from tutorlink.api import admin, auth, message, notification, review, session, session_notification, session_request, users
from tutorlink.config import settings
from tutorlink.database import Base, engine
from tutorlink.exceptions import ServerError, TutorLinkError
from tutorlink.schemas import ApiResponse, ErrorResponse

if not logging.getLogger().handlers:
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    # Create database tables
    Base.metadata.create_all(bind=engine)
    yield


# Initialize FastAPI app
app = FastAPI(title=settings.APP_NAME, version=settings.APP_VERSION, lifespan=lifespan)

# CORS Middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error_response(status_code: int, message: str, errors=None) -> JSONResponse:
    body = ErrorResponse(message=message, errors=errors)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


@app.exception_handler(TutorLinkError)
async def tutorlink_error_handler(request: Request, exc: TutorLinkError):
    logger.warning(
        "%s path=%s status=%s message=%s",
        type(exc).__name__, request.url.path, exc.status_code, exc.message,
    )
    return _error_response(exc.status_code, exc.message, exc.errors)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    logger.warning("HTTPException path=%s status=%s detail=%s", request.url.path, exc.status_code, exc.detail)
    return _error_response(exc.status_code, str(exc.detail))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
            "message": err.get("msg", "Invalid value"),
        }
        for err in exc.errors()
    ]
    logger.warning("Validation failed path=%s errors=%s", request.url.path, errors)
    return _error_response(400, "Validation errors", errors)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled server error path=%s: %s", request.url.path, exc)
    error = ServerError()
    return _error_response(error.status_code, error.message)


# API routers
app.include_router(auth.router)                  # /auth/*
app.include_router(users.router)                 # /users/*
app.include_router(admin.router)                 # /admin/*
app.include_router(session_request.router)       # /session-requests/*
app.include_router(session_notification.router)  # /session-notifications/*
app.include_router(session.router)               # /sessions/*
app.include_router(review.router)                # /reviews/*
app.include_router(notification.router)          # /notifications/*
app.include_router(message.router)               # /messages/*


@app.get("/health", response_model=ApiResponse)
def health_check():
    return ApiResponse(
        message=f"{settings.APP_NAME} is running",
        data={"status": "healthy", "version": settings.APP_VERSION, "environment": settings.APP_ENV},
    )
