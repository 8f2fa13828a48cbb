# verity/main.py
import logging
from datetime import datetime, timezone
from typing import Optional

import requests
import uvicorn
from fastapi import Body, Depends, FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .auth import AuthService
from .config import DEFAULT_JWT_SECRET, Settings, get_settings
from .errors import AuthError, ValidationError, VerityError
from .firebase import get_db
from .gateway import ModelGateway
from .models import AnalyzeIn, DeepfakeIn, LoginIn, RegisterIn, SummarizeIn
from .news import NewsFeed
from .pipeline import VerificationPipeline
from .store import AuditLog, UserStore

settings = get_settings()

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("verity")

if settings.is_production and settings.JWT_SECRET == DEFAULT_JWT_SECRET:
    logger.warning("JWT_SECRET is the built-in default; set a real secret in production")

app = FastAPI(title="VerityAI Backend (Fact-check, Deepfake Scan, Intel Feed)", version=__version__)

# --- Middleware ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.origins,
    allow_origin_regex=r"https://.*\.vercel\.app" if settings.ALLOW_VERCEL_PREVIEWS else None,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    logger.info("%s %s", request.method, request.url.path)
    return await call_next(request)


# --- Error handlers ---

def _fail(status: int, error: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status, content={"success": False, "error": error, **extra})


@app.exception_handler(VerityError)
async def verity_error(request: Request, exc: VerityError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return _fail(exc.status_code, exc.message)


@app.exception_handler(RequestValidationError)
async def bad_request(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        loc = ".".join(str(p) for p in errors[0].get("loc", ()) if p != "body")
        return _fail(400, f"Invalid value for {loc or 'request'}: {errors[0].get('msg')}")
    return _fail(400, "Invalid request")


@app.exception_handler(StarletteHTTPException)
async def http_error(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        return _fail(404, "Endpoint not found")
    return _fail(exc.status_code, str(exc.detail))


@app.exception_handler(Exception)
async def server_error(request: Request, exc: Exception):
    logger.exception("Server error on %s %s", request.method, request.url.path)
    cfg = request.app.dependency_overrides.get(get_settings, get_settings)()
    if cfg.is_production:
        return _fail(500, "Internal server error")
    return _fail(500, "Internal server error", details=str(exc))


# --- Dependencies ---

_http = requests.Session()


def get_db_factory():
    return get_db


def get_gateway(cfg: Settings = Depends(get_settings)) -> ModelGateway:
    return ModelGateway(cfg, _http)


def get_pipeline(gateway: ModelGateway = Depends(get_gateway),
                 db_factory=Depends(get_db_factory)) -> VerificationPipeline:
    return VerificationPipeline(gateway, AuditLog(db_factory))


def get_auth_service(cfg: Settings = Depends(get_settings), db=Depends(get_db)) -> AuthService:
    return AuthService(cfg, UserStore(db))


def get_news_feed(cfg: Settings = Depends(get_settings)) -> NewsFeed:
    return NewsFeed(cfg, _http)


def current_user_id(authorization: Optional[str] = Header(None),
                    auth: AuthService = Depends(get_auth_service)) -> str:
    token = None
    if authorization and authorization.startswith("Bearer"):
        parts = authorization.split(" ")
        token = parts[1] if len(parts) > 1 else None
    if not token:
        raise AuthError("Access denied. No token provided.")
    return auth.verify_token(token)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


# --- Routes ---

@app.get("/api/health")
def health():
    return {
        "success": True,
        "status": "online",
        "service": "VerityAI",
        "version": __version__,
        "timestamp": _now(),
    }


@app.post("/api/auth/register", status_code=201)
def register(payload: RegisterIn = Body(...), auth: AuthService = Depends(get_auth_service)):
    result = auth.register(payload.name, payload.email, payload.password)
    return {"success": True, "data": result.model_dump()}


@app.post("/api/auth/login")
def login(payload: LoginIn = Body(...), auth: AuthService = Depends(get_auth_service)):
    result = auth.login(payload.email, payload.password)
    return {"success": True, "data": result.model_dump()}


@app.get("/api/auth/me")
def me(user_id: str = Depends(current_user_id), auth: AuthService = Depends(get_auth_service)):
    return {"success": True, "data": auth.get_profile(user_id)}


@app.post("/api/analyze")
def analyze(payload: AnalyzeIn = Body(...), pipeline: VerificationPipeline = Depends(get_pipeline)):
    """
    Fact-check a URL or a text snippet.
    Upstream AI failures come back as a neutral Inconclusive verdict, not an error.
    """
    result = pipeline.analyze(url=payload.url, text=payload.text)
    return {"success": True, "data": result.public()}


@app.get("/api/analyze/history")
def history(limit: int = 10, pipeline: VerificationPipeline = Depends(get_pipeline)):
    return {"success": True, "data": pipeline.list_recent(limit)}


@app.post("/api/analyze/deepfake")
def deepfake(payload: DeepfakeIn = Body(...), pipeline: VerificationPipeline = Depends(get_pipeline)):
    result = pipeline.analyze_media(payload.media, payload.mediaType, payload.fileName, payload.isVideo)
    return {"success": True, "data": result.public()}


@app.get("/api/news")
def news(
    q: Optional[str] = None,
    category: Optional[str] = None,
    pageSize: int = 20,
    page: int = 1,
    sortBy: str = "publishedAt",
    language: str = "en",
    feed: NewsFeed = Depends(get_news_feed),
):
    data = feed.fetch(q=q, category=category, page_size=pageSize, page=page, sort_by=sortBy, language=language)
    return {"success": True, "data": data}


@app.post("/api/news/summarize")
def summarize(payload: SummarizeIn = Body(...), gateway: ModelGateway = Depends(get_gateway)):
    if not payload.title and not payload.content:
        raise ValidationError("Please provide article title or content")
    bullets = gateway.summarize_article(payload.title, payload.content)
    return {"success": True, "data": {"summary": bullets, "analyzedAt": _now()}}


def run():
    uvicorn.run("verity.main:app", host=settings.HOST, port=settings.PORT, log_level=settings.LOG_LEVEL.lower())


if __name__ == "__main__":
    run()
