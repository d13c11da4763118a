"""FastAPI application serving the knowledge graph view model."""

import logging
from collections.abc import Sequence
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from notegraph.api.graph import router as graph_router
from notegraph.config import settings
from notegraph.models import Note
from notegraph.notes.store import InMemoryNoteStore
from notegraph.oracle.connections import LLMConnectionOracle
from notegraph.oracle.llm_client import close_llm_client, get_llm_client
from notegraph.oracle.ranking import EmbeddingRankingOracle
from notegraph.session import GraphSession

logger = logging.getLogger(__name__)


def create_default_session() -> GraphSession:
    """Wire a session to the configured note file and hosted model."""
    if settings.notes_file:
        store = InMemoryNoteStore.from_json_file(settings.notes_file)
    else:
        logger.info("No notes_file configured, starting with an empty note store")
        store = InMemoryNoteStore()

    llm = get_llm_client()
    session: GraphSession | None = None

    async def visible_notes() -> Sequence[Note]:
        return session.visible_notes if session is not None else []

    session = GraphSession(
        note_store=store,
        connection_oracle=LLMConnectionOracle(llm_client=llm),
        ranking_oracle=EmbeddingRankingOracle(visible_notes, llm_client=llm),
    )
    return session


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application lifespan - startup and shutdown."""
    logger.info("Starting notegraph API...")

    session: GraphSession | None = getattr(app.state, "session", None)
    if session is None:
        session = create_default_session()
        app.state.session = session

    await session.load()
    session.start()

    yield

    logger.info("Shutting down notegraph API...")
    await session.close()
    await close_llm_client()


def create_app(session: GraphSession | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Notegraph",
        description="Semantic knowledge graph over personal notes",
        version="0.1.0",
        lifespan=lifespan,
    )
    if session is not None:
        app.state.session = session

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(graph_router)

    return app


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    uvicorn.run(
        "notegraph.api.main:create_app",
        factory=True,
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_debug,
    )
