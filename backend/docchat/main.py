"""FastAPI application factory for the document chat service.

Run with ``uvicorn backend.docchat.main:create_app --factory``.
"""

import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.engine import Engine

from .chat import ChatService
from .config import Settings, get_settings
from .conversations import ConversationStore
from .db import create_db_engine, init_db
from .documents import DocumentStore
from .errors import register_error_handlers
from .inference import GroqGateway
from .routes import router

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    engine: Optional[Engine] = None,
    gateway: Optional[GroqGateway] = None,
) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="[%(asctime)s] %(levelname)s %(name)s - %(message)s",
    )

    # Initialize DB
    if engine is None:
        engine = create_db_engine(settings.database_url)
    init_db(engine)

    if gateway is None:
        gateway = GroqGateway(settings.groq_api_key, settings.groq_base_url, settings.groq_model)
        if not settings.groq_api_key:
            logger.warning("GROQ_API_KEY is not set; questions will fail until it is configured")

    documents = DocumentStore(engine)
    conversations = ConversationStore(engine)

    app = FastAPI(title="DocChat")
    app.state.settings = settings
    app.state.engine = engine
    app.state.documents = documents
    app.state.conversations = conversations
    app.state.chat = ChatService(documents, conversations, gateway)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)

    app.include_router(router)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    logger.info("DocChat ready (database=%s, uploads=%s)", settings.database_url, settings.upload_dir)
    return app
