import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from chaos_story.config import Settings, load_settings
from chaos_story.engine import ChaosGameEngine
from chaos_story.errors import (
    ChaosError,
    CorruptDataError,
    GameEndedError,
    InvalidChoiceError,
    NotFoundError,
    NotGameOwnerError,
    SelfVoteError,
    ValidationError,
)
from chaos_story.identity import IdentityProvider
from chaos_story.llm import HttpLLM
from chaos_story.repository import ChaosStorage
from chaos_story.routes import router
from chaos_story.scenes import EndingPolicy, SceneWriter
from chaos_story.store import JsonFileStore

logger = logging.getLogger(__name__)

_STATUS_CODES: list[tuple[type[ChaosError], int]] = [
    (ValidationError, 400),
    (SelfVoteError, 403),
    (NotGameOwnerError, 403),
    (NotFoundError, 404),
    (InvalidChoiceError, 409),
    (GameEndedError, 409),
    (CorruptDataError, 503),
]


async def chaos_error_handler(request: Request, exc: ChaosError) -> JSONResponse:
    status = 500
    for error_type, code in _STATUS_CODES:
        if isinstance(exc, error_type):
            status = code
            break
    if isinstance(exc, CorruptDataError):
        logger.error("%s %s: %s", request.method, request.url.path, exc.detail)
    return JSONResponse(status_code=status, content={"detail": exc.reason})


def build_engine(settings: Settings, identity: IdentityProvider | None = None) -> ChaosGameEngine:
    llm = None
    # No URL and no key: fallback scenes only
    if settings.llm_provider_url or settings.llm_api_key:
        llm = HttpLLM(
            provider_url=settings.llm_provider_url,
            api_key=settings.llm_api_key,
            provider_format=settings.llm_format,
            model=settings.llm_model,
            timeout=settings.generator_timeout,
        )
    writer = SceneWriter(
        llm,
        timeout=settings.generator_timeout,
        ending=EndingPolicy(
            settings.ending_threshold, settings.ending_probability, settings.ending_seed,
        ),
    )
    return ChaosGameEngine(
        ChaosStorage(JsonFileStore(settings.data_dir)),
        writer=writer,
        identity=identity,
        leaderboard_size=settings.leaderboard_size,
    )


def create_app(settings: Settings | None = None, engine: ChaosGameEngine | None = None) -> FastAPI:
    if engine is None:
        engine = build_engine(settings or load_settings())

    app = FastAPI(title="Chaos Story")
    app.state.engine = engine
    app.add_exception_handler(ChaosError, chaos_error_handler)
    app.include_router(router, prefix="/api")
    return app


# Default app instance for uvicorn (uses DATA_DIR etc. from the environment)
app = create_app()
