from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
import logging

from ..common.errors import ConfigError
from ..common.schemas import ChatRequest, MatchResult
from ..common.utils import setup_logging, truncate
from ..config import load_settings
from ..orchestrator_agent.agent import SearchOrchestrator, build_orchestrator

settings = load_settings()
setup_logging(settings.log_level, settings.log_file)

logger = logging.getLogger(__name__)

_orchestrator = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    if _orchestrator is not None:
        _orchestrator.close()


app = FastAPI(title="LocalRadar API", version="1.0.0", lifespan=lifespan)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:9002", "http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_orchestrator() -> SearchOrchestrator:
    """Build the orchestrator on first use so the app can start without credentials."""
    global _orchestrator
    if _orchestrator is None:
        try:
            _orchestrator = build_orchestrator(settings)
        except ConfigError as e:
            logger.error(f"Search service is not configured: {e}")
            raise HTTPException(status_code=503, detail=str(e))
    return _orchestrator


@app.get("/")
async def root():
    return {"message": "LocalRadar API is running"}


@app.post("/api/chat", response_model=MatchResult)
def chat(request: ChatRequest, orchestrator: SearchOrchestrator = Depends(get_orchestrator)):
    logger.info(f"Processing chat request: {truncate(request.user_input)}")
    result = orchestrator.handle_prompt(request.user_input)
    logger.info(f"Returning {len(result.items)} items (error={result.error}): {truncate(result.message)}")
    return result
