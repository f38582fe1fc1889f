"""Networking Companion Backend Application.

This is the main entry point for the networking backend: user accounts,
connection requests, direct messaging, AI match suggestions and a chat
assistant, delivered over REST plus a Socket.IO channel.

Modules:
    - auth: password accounts and bearer tokens
    - connections: connection requests between users
    - messages: direct messages inside accepted connections
    - matches: AI match suggestions (OpenAI)
    - chatbot: networking chat assistant
    - stats: network statistics
    - realtime: Socket.IO presence, room relay and unread counts

Serve ``app.main:asgi_app`` so that Socket.IO traffic is handled in front of
the FastAPI routes.
"""
import logging
from contextlib import asynccontextmanager
from dataclasses import asdict

import socketio
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.ai_provider.resolver import ProviderResolver, get_resolver, set_resolver
from app.auth.router import router as auth_router
from app.chatbot.router import router as chatbot_router
from app.config import get_config
from app.connections.router import router as connections_router
from app.database import Database, isoformat, utcnow
from app.errors import register_exception_handlers
from app.matches.router import router as matches_router
from app.messages.router import router as messages_router
from app.messages.service import MessageService
from app.realtime.gateway import SocketGateway
from app.realtime.hub import RealtimeHub, set_hub
from app.realtime.router import router as socket_router
from app.realtime.transport import SocketIOTransport
from app.stats.router import router as stats_router
from app.users.service import UserService

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

# Silence verbose third-party loggers.
# httpx/httpcore log every TCP connection and TLS handshake of the OpenAI
# client; engineio/socketio log every packet.
for _noisy in (
    "httpx",
    "httpcore",
    "httpcore.http11",
    "httpcore.connection",
    "openai",
    "engineio",
    "engineio.server",
    "socketio",
    "socketio.server",
):
    logging.getLogger(_noisy).setLevel(logging.WARNING)

logger = logging.getLogger(__name__)

_config = get_config()

sio = socketio.AsyncServer(
    async_mode="asgi",
    cors_allowed_origins=_config.server.cors_origins,
    logger=False,
    engineio_logger=False,
)
gateway = SocketGateway()
gateway.attach(sio)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup/shutdown events."""
    # Startup
    config = get_config()

    # Apply configured log level to root logger so that
    # `logging.level: "debug"` in networking.settings.yaml activates DEBUG output.
    configured_level = getattr(logging, config.logging.level.upper(), None)
    if configured_level is not None:
        logging.getLogger().setLevel(configured_level)
        logger.info("Root logger level set to %s", config.logging.level.upper())

    db = Database.get_instance(config.database.path)
    logger.info(f"Database ready at {db.path}")

    resolver = ProviderResolver(config)
    resolver.resolve()
    set_resolver(resolver)

    set_hub(RealtimeHub(
        transport=SocketIOTransport(sio),
        unread_source=MessageService(db),
        profile_store=UserService(db),
    ))

    logger.info(
        f"Server running on http://{config.server.host}:{config.server.port}"
    )

    yield  # Application runs here

    # Shutdown
    set_hub(None)
    Database.reset_instance()
    logger.info("Application shutdown complete")


# Create FastAPI application with metadata
app = FastAPI(
    title="Networking Companion API",
    description="Backend service for professional networking: connections, messaging and AI matching",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_config.server.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Register all routers
app.include_router(auth_router)
app.include_router(connections_router)
app.include_router(messages_router)
app.include_router(matches_router)
app.include_router(chatbot_router)
app.include_router(stats_router)
app.include_router(socket_router)

# Socket.IO in front of the FastAPI routes
asgi_app = socketio.ASGIApp(
    sio,
    other_asgi_app=app,
    socketio_path=_config.realtime.socketio_path,
)


@app.get("/health")
async def health() -> dict:
    """Health check endpoint.

    Returns:
        dict: Status object indicating the server is running.
    """
    resolver = get_resolver()
    return {
        "success": True,
        "message": "Server is running",
        "timestamp": isoformat(utcnow()),
        "ai": asdict(resolver.get_status()) if resolver is not None else None,
    }


@app.get("/")
async def root() -> dict:
    return {
        "success": True,
        "message": "Networking Companion API",
        "version": app.version,
    }
