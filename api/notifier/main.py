import logging
import secrets
from datetime import datetime, timezone

from fastapi import APIRouter, BackgroundTasks, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from notifier.channels.dispatcher import MatrixNotifier
from notifier.config import settings

API_VERSION = "0.1.0"

logger = logging.getLogger(__name__)

notifier = MatrixNotifier.from_settings(settings)

app = FastAPI(
    title=settings.app_name,
    description="Relay GitLab project events to a Matrix room.",
    version=API_VERSION,
    docs_url=None,
    redoc_url=None,
    openapi_url=None,
)


# --- Exception Handlers ---


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": {"code": exc.status_code, "message": exc.detail}},
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = []
    for err in exc.errors():
        clean = {k: v for k, v in err.items() if k != "ctx"}
        if "msg" in clean:
            clean["msg"] = str(clean["msg"])
        errors.append(clean)
    return JSONResponse(
        status_code=422,
        content={"error": {"code": 422, "message": "Validation error", "details": errors}},
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    return JSONResponse(
        status_code=500,
        content={"error": {"code": 500, "message": "Internal server error"}},
    )


# --- Routes ---

hooks = APIRouter(prefix="/hooks", tags=["webhooks"])


def _check_token(request: Request) -> None:
    if not settings.webhook_secret:
        return
    provided = request.headers.get("X-Gitlab-Token", "")
    if not secrets.compare_digest(provided.encode(), settings.webhook_secret.encode()):
        raise HTTPException(status_code=401, detail="Invalid webhook token")


@hooks.post("/gitlab", status_code=202, summary="Receive a GitLab project event")
async def receive_gitlab_event(request: Request, background_tasks: BackgroundTasks):
    _check_token(request)

    try:
        body = await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="Body must be JSON")

    logger.debug(
        "Received %s event", request.headers.get("X-Gitlab-Event") or "unknown"
    )
    # Respond before delivery; a slow homeserver must not hold the webhook
    background_tasks.add_task(notifier.notify, body)
    return {"data": {"accepted": True}}


app.include_router(hooks)


@app.get("/", summary="API root")
async def root():
    return {"name": settings.app_name, "status": "ok", "version": API_VERSION}


@app.get("/health", summary="Health check")
async def health_ping():
    checks = {"matrix": "configured" if notifier.is_configured else "unconfigured"}
    return {
        "status": "healthy" if notifier.is_configured else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": API_VERSION,
        "checks": checks,
    }
