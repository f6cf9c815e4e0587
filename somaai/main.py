import asyncio
import logging
import random
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from somaai import pipeline
from somaai.config import Settings, settings as default_settings
from somaai.cosmic import add_cosmic_touch
from somaai.errors import AnalysisFailed, NoJsonFound, SomaError, UpstreamUnavailable
from somaai.fallbacks import (
    fallback_analysis,
    fallback_questions,
    sample_analysis,
    sample_questions,
    truncated_text_analysis,
)
from somaai.llm import CompletionClient, OpenRouterClient
from somaai.models import (
    AnalyzeRequest,
    AnalyzeResponse,
    CosmicInsightRequest,
    CosmicInsightResponse,
    CsrfTokenResponse,
    HealthResponse,
    McqRequest,
    McqResponse,
    QuickQueryRequest,
    QuickQueryResponse,
)
from somaai.security import (
    CsrfTokens,
    RateLimiter,
    add_security_headers,
    client_id,
    rate_limit,
    require_allowed_origin,
    require_csrf,
    sanitize_for_log,
    sweep_forever,
)
from somaai.store import MemoryStore

logging.basicConfig(
    level=default_settings.server.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
log = logging.getLogger(__name__)

# Order matters: origin, then CSRF, then the rate limiter.
_GUARDS = [Depends(require_allowed_origin), Depends(require_csrf), Depends(rate_limit)]

router = APIRouter()


def _client(request: Request) -> CompletionClient:
    return request.app.state.client


def _debug_body(request: Request, label: str, body: dict) -> None:
    if request.app.state.settings.server.debug:
        log.debug("%s request body: %s", label, sanitize_for_log(body))


@router.get("/", response_class=PlainTextResponse)
async def index():
    return "SomaAI backend up"


@router.get("/api/health", response_model=HealthResponse)
async def health():
    return HealthResponse(timestamp=datetime.now(timezone.utc).isoformat())


@router.get("/api/csrf-token", response_model=CsrfTokenResponse)
async def csrf_token(request: Request):
    token = request.app.state.csrf.issue(client_id(request), time.monotonic())
    return CsrfTokenResponse(csrfToken=token)


@router.post("/api/generate-mcqs", response_model=McqResponse, dependencies=_GUARDS)
async def generate_mcqs(req: McqRequest, request: Request):
    _debug_body(request, "MCQ", req.model_dump())
    symptom = pipeline.validate_symptom(req.symptom)
    client = _client(request)

    if not client.configured:
        return McqResponse(questions=sample_questions(), sample=True)

    try:
        questions = await pipeline.generate_mcqs(symptom, req.type, client=client)
    except (UpstreamUnavailable, NoJsonFound) as exc:
        log.warning("MCQ generation degraded to fallback: %s", type(exc).__name__)
        return McqResponse(questions=fallback_questions(), fallback=True)

    if not questions:
        log.warning("MCQ output had no usable questions, using fallback")
        return McqResponse(questions=fallback_questions(), fallback=True)
    return McqResponse(questions=questions)


@router.post("/api/analyze", response_model=AnalyzeResponse, dependencies=_GUARDS)
async def analyze(req: AnalyzeRequest, request: Request):
    _debug_body(request, "Analyze", req.model_dump())
    symptom = pipeline.validate_symptom(req.symptom)
    client = _client(request)

    if not client.configured:
        response = AnalyzeResponse(result=sample_analysis(), sample=True)
    else:
        try:
            result = await pipeline.analyze(symptom, req.answers, client=client)
            response = AnalyzeResponse(result=result)
        except AnalysisFailed as exc:
            if isinstance(exc.cause, UpstreamUnavailable):
                log.warning("Analysis upstream unreachable, returning fallback")
                response = AnalyzeResponse(result=fallback_analysis(symptom), fallback=True)
            elif isinstance(exc.cause, NoJsonFound) and exc.raw and exc.raw.strip():
                log.warning("Analysis output was not JSON, returning truncated text")
                response = AnalyzeResponse(result=truncated_text_analysis(exc.raw), fallback=True)
            elif isinstance(exc.cause, NoJsonFound):
                response = AnalyzeResponse(result=fallback_analysis(symptom), fallback=True)
            else:
                raise

    if request.app.state.settings.server.cosmic_mode:
        response.result = add_cosmic_touch(response.result, request.app.state.rng)
    return response


@router.post("/api/quick-query", response_model=QuickQueryResponse, dependencies=_GUARDS)
async def quick_query(req: QuickQueryRequest, request: Request):
    _debug_body(request, "Quick query", req.model_dump())
    answer = await pipeline.quick_answer(req.question, client=_client(request))
    return QuickQueryResponse(answer=answer)


@router.post("/api/cosmic-insight", response_model=CosmicInsightResponse, dependencies=_GUARDS)
async def cosmic_insight(req: CosmicInsightRequest, request: Request):
    context = req.context
    if context is None or not context.symptom.strip() or not context.summary.strip():
        return JSONResponse(
            status_code=400,
            content={"error": "Context with symptom and summary is required."},
        )
    insight = await pipeline.cosmic_insight(context.symptom, context.summary, client=_client(request))
    return CosmicInsightResponse(insight=insight)


# ── Error handlers ──


async def _soma_error(request: Request, exc: SomaError):
    if exc.status_code >= 500:
        log.error("%s on %s: %s", type(exc).__name__, request.url.path, sanitize_for_log(str(exc)))
    else:
        log.warning("%s on %s", type(exc).__name__, request.url.path)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.public_message})


async def _validation_error(request: Request, exc: RequestValidationError):
    log.warning("Invalid request body on %s", request.url.path)
    return JSONResponse(status_code=400, content={"error": "Invalid request body"})


async def _http_error(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)


def create_app(
    settings: Settings | None = None,
    client: CompletionClient | None = None,
    rng: random.Random | None = None,
) -> FastAPI:
    settings = settings or default_settings
    server = settings.server

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.client.configured:
            log.info("OpenRouter credential configured (model: %s)", settings.openrouter.model)
        else:
            log.warning(
                "OPENROUTER_API_KEY not set; /api/analyze and /api/generate-mcqs "
                "will return sample responses"
            )
        sweeper = asyncio.create_task(
            sweep_forever([app.state.rate_store, app.state.csrf_store], server.sweep_interval_s)
        )
        yield
        sweeper.cancel()
        try:
            await sweeper
        except asyncio.CancelledError:
            pass

    app = FastAPI(title="SomaAI", version="0.1.0", lifespan=lifespan)

    app.state.settings = settings
    app.state.client = client or OpenRouterClient(settings.openrouter)
    app.state.rng = rng or random.Random()
    app.state.rate_store = MemoryStore()
    app.state.csrf_store = MemoryStore()
    app.state.rate_limiter = RateLimiter(
        app.state.rate_store, server.rate_limit_window_s, server.rate_limit_max
    )
    app.state.csrf = CsrfTokens(app.state.csrf_store, server.csrf_token_ttl_s)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=server.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-CSRF-Token"],
    )
    app.middleware("http")(add_security_headers)

    app.add_exception_handler(SomaError, _soma_error)
    app.add_exception_handler(RequestValidationError, _validation_error)
    app.add_exception_handler(StarletteHTTPException, _http_error)

    app.include_router(router)
    return app


app = create_app()
