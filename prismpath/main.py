from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from dotenv import load_dotenv
import logging

load_dotenv()

from prismpath.config import get_settings  # noqa: E402
from prismpath.routes import (  # noqa: E402
    ai,
    audit,
    auth,
    behavior_logs,
    documents,
    goals,
    plans,
    progress,
    public,
    status,
    strategies,
    students,
)
from prismpath.services.document_summarizer import EmptyDocumentError  # noqa: E402
from prismpath.services.identity import AccountExistsError, AuthenticationError  # noqa: E402
from prismpath.services.llm import AIRateLimitError  # noqa: E402
from prismpath.utils.access import AccessDeniedError, RecordNotFoundError  # noqa: E402

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(
    redirect_slashes=False,
    title="PrismPath API",
    description="Case management API for special education teams",
    version="1.0.0",
    openapi_tags=[
        {
            "name": "Documents",
            "description": "Operations with IEP and 504 PDF uploads",
        },
        {
            "name": "AI",
            "description": "AI drafting tools (rate limited per client)",
        },
    ],
)

# Configure CORS
frontend_url = get_settings().frontend_url
app.add_middleware(
    CORSMiddleware,
    allow_origins=[frontend_url] if frontend_url else [],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error(status_code: int, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


@app.exception_handler(AccessDeniedError)
async def access_denied_handler(request: Request, exc: AccessDeniedError):
    return _error(403, exc)


@app.exception_handler(RecordNotFoundError)
async def not_found_handler(request: Request, exc: RecordNotFoundError):
    return _error(404, exc)


@app.exception_handler(AuthenticationError)
async def authentication_handler(request: Request, exc: AuthenticationError):
    return _error(401, exc)


@app.exception_handler(AccountExistsError)
async def account_exists_handler(request: Request, exc: AccountExistsError):
    return _error(409, exc)


@app.exception_handler(EmptyDocumentError)
async def empty_document_handler(request: Request, exc: EmptyDocumentError):
    return _error(422, exc)


@app.exception_handler(ValueError)
async def invalid_input_handler(request: Request, exc: ValueError):
    return _error(400, exc)


@app.exception_handler(AIRateLimitError)
async def ai_rate_limit_handler(request: Request, exc: AIRateLimitError):
    return JSONResponse(status_code=429, content={"detail": str(exc)}, headers={"Retry-After": "30"})


@app.exception_handler(RuntimeError)
async def runtime_error_handler(request: Request, exc: RuntimeError):
    logger.error(f"Unhandled service error on {request.url.path}: {str(exc)}")
    return _error(500, exc)


# Include routers
app.include_router(auth.router, prefix="/auth", tags=["Auth"])
app.include_router(students.router, prefix="/students", tags=["Students"])
app.include_router(goals.router, prefix="/goals", tags=["Goals"])
app.include_router(behavior_logs.router, prefix="/behavior-logs", tags=["Behavior Logs"])
app.include_router(documents.router, prefix="/documents", tags=["Documents"])
app.include_router(plans.router, prefix="/plans", tags=["Plans"])
app.include_router(progress.router, prefix="/progress", tags=["Progress"])
app.include_router(public.router, prefix="/public", tags=["Public"])
app.include_router(ai.router, prefix="/ai", tags=["AI"])
app.include_router(strategies.router, prefix="/strategies", tags=["Strategies"])
app.include_router(audit.router, prefix="/audit", tags=["Audit"])
app.include_router(status.router, prefix="/status", tags=["Status"])
