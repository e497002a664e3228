import logging
from pathlib import Path

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from app import schemas
from app.config.sources import SourceConfig
from app.dependencies import get_highlights_cache, get_settings, get_source_configs
from app.errors import ConfigurationMissing
from app.logging_config import setup_logging
from app.services.highlights_cache import HighlightsCache

settings = get_settings()
setup_logging(settings.log_level, settings.log_file)
logger = logging.getLogger(__name__)

try:
    get_source_configs()
except ConfigurationMissing as exc:
    # every request answers 500 {error} until the sources file is fixed
    logger.error("Startup configuration error: %s", exc)

app = FastAPI(title="Headline Highlights API")


@app.exception_handler(ConfigurationMissing)
async def configuration_missing_handler(request: Request, exc: ConfigurationMissing) -> JSONResponse:
    logger.error("Configuration error on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=500, content={"error": str(exc)})


@app.get("/health", response_model=schemas.HealthResponse)
def health() -> schemas.HealthResponse:
    return schemas.HealthResponse()


@app.get("/sources", response_model=schemas.SourcesResponse)
def list_sources(sources: tuple[SourceConfig, ...] = Depends(get_source_configs)) -> schemas.SourcesResponse:
    return schemas.SourcesResponse(sources=[schemas.SourceOut(**cfg.public_view()) for cfg in sources])


@app.get(
    "/api/highlights",
    response_model=list[schemas.HeadlineOut],
    responses={500: {"model": schemas.ErrorResponse}},
)
@app.get("/highlights", response_model=list[schemas.HeadlineOut], include_in_schema=False)
async def highlights(cache: HighlightsCache = Depends(get_highlights_cache)) -> list[schemas.HeadlineOut]:
    items = await cache.get_highlights()
    return [schemas.HeadlineOut.from_item(item) for item in items]


if settings.static_dir and Path(settings.static_dir).is_dir():
    app.mount("/", StaticFiles(directory=settings.static_dir, html=True), name="static")
