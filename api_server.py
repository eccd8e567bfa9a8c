from __future__ import annotations  # FastAPI server for the interview assistant

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routes import router, session_registry
from candidate_management import SqlitePersistenceService
from config.registry import AI_SERVICE_KEY, PERSISTENCE_KEY, bind_model
from config.settings import settings
from interview_evaluation import LlmEvaluationService, build_service_with_config
from storage.migrate import migrate


logger = logging.getLogger(__name__)


def _evaluation_service() -> LlmEvaluationService:  # Build the LLM-backed evaluator from the route file
    return build_service_with_config(Path(settings.APP_CONFIG_PATH))


def bind_default_services() -> None:  # Register production service factories
    bind_model(AI_SERVICE_KEY, _evaluation_service)
    bind_model(PERSISTENCE_KEY, SqlitePersistenceService)


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    migrate(settings.DB_PATH)
    logger.info("Database ready at %s", settings.DB_PATH)
    try:
        yield
    finally:
        await session_registry.close_all()


bind_default_services()

app = FastAPI(title="AI Interview Assistant API", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_URL],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(router)


@app.get("/health")
def health() -> dict:  # Liveness probe
    return {"status": "ok"}
