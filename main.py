import logging
from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from dal.message_dal import MessageDAL
from routes.auth_route import router as auth_router
from routes.chat_ws import router as chat_ws_router
from routes.room_route import router as room_router
from services.realtime.connection_hub import ConnectionHub
from services.realtime.event_router import EventRouter
from services.realtime.session_manager import SessionManager
from utils.database_init import AsyncDatabaseInitializer
from utils.settings import ChatSettings

load_dotenv()  # Load environment variables from .env file if present

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan manager to initialize:
      - the SQLite database (schema ensured at DATABASE_DIR/chat.db)
      - the session manager, event router and connection hub
    and attach them to `app.state`.
    """
    settings: ChatSettings = app.state.settings

    db_initializer = AsyncDatabaseInitializer(settings.database_dir)
    await db_initializer.ensure_database()
    app.state.db_initializer = db_initializer

    sessions = SessionManager()
    app.state.session_manager = sessions
    app.state.event_router = EventRouter(
        sessions,
        settings.rooms,
        MessageDAL(db_initializer),
        deliver_after_write=settings.deliver_after_write,
    )
    app.state.connection_hub = ConnectionHub()
    logger.info(
        "Chat server ready: rooms=%s deliver_after_write=%s",
        list(settings.rooms),
        settings.deliver_after_write,
    )

    try:
        yield
    finally:
        await app.state.connection_hub.close_all()
        await app.state.event_router.drain()
        sessions.close()
        logger.info("Chat server stopped")


def create_app(settings: Optional[ChatSettings] = None) -> FastAPI:
    """
    Create and configure the FastAPI application instance.
    """
    settings = settings or ChatSettings.from_env()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    app = FastAPI(lifespan=lifespan)
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health(request: Request):
        """
        Simple health check reporting database readiness and live session counts.
        """
        state = request.app.state
        db = getattr(state, "db_initializer", None)
        sessions = getattr(state, "session_manager", None)
        hub = getattr(state, "connection_hub", None)
        return {
            "ok": True,
            "db_initialized": bool(db is not None and db.initialized),
            "online_users": len(sessions.presence) if sessions is not None else 0,
            "connections": len(hub) if hub is not None else 0,
        }

    # Register application routers
    app.include_router(auth_router)
    app.include_router(room_router)
    app.include_router(chat_ws_router)

    return app


app = create_app()
