import argparse
import logging
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager

import sys
from pathlib import Path

# Add project root to path for package imports
base_dir = Path(__file__).parent
sys.path.insert(0, str(base_dir))

from db.database import init_db
from config import load_config, CONFIG_DIR
from routes import flashcards, review  # Import routers
from utils.errors import InvalidArgument, NotFound, PersistenceFailure

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# First-run init
@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: init DB and config
    config = load_config()  # Ensures config exists
    configure_logging(config["logging"]["level"])
    init_db()
    yield
    review.registry.clear()


app = FastAPI(
    title="FlashDeck",
    description="Spaced-repetition flashcard scheduling",
    lifespan=lifespan,
)

# Include routers
app.include_router(flashcards.router, prefix="/flashcards", tags=["flashcards"])
app.include_router(review.router, prefix="/review", tags=["review"])


@app.exception_handler(InvalidArgument)
async def invalid_argument_handler(request: Request, exc: InvalidArgument):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(NotFound)
async def not_found_handler(request: Request, exc: NotFound):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(PersistenceFailure)
async def persistence_failure_handler(request: Request, exc: PersistenceFailure):
    logger.warning("Persistence failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": str(exc)})


@app.get("/health")
async def health():
    return {"status": "ok"}


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="FlashDeck App")
    parser.add_argument("--init", action="store_true", help="Initialize DB and config")
    parser.add_argument("--dev", action="store_true", help="Run in dev mode with reload")
    parser.add_argument("--port", type=int, default=None, help="Port to listen on")
    args = parser.parse_args()
    config = load_config()  # Ensures config is copied if missing
    configure_logging(config["logging"]["level"])
    if args.init:
        init_db()
        logger.info("DB initialized and config copied to %s", CONFIG_DIR)
        sys.exit(0)
    # Run server
    port = args.port or config["server"]["port"]
    uvicorn.run(
        "main:app",
        host=config["server"]["host"],
        port=port,
        reload=args.dev,
        log_level=config["logging"]["level"].lower(),
    )
