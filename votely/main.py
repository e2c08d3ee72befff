# main.py
import logging
from contextlib import asynccontextmanager
from typing import Callable, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from votely import __version__
from votely.config import CORS_ORIGINS, LOG_LEVEL, MONGO_DB
from votely.database import create_client, ensure_indexes
from votely.errors import VotelyError
from votely.ledger import VoteLedger
from votely.realtime import RealtimeBroadcaster, SubscriptionRegistry
from votely.routes.auth_routes import router as auth_router
from votely.routes.candidate_routes import router as candidate_router
from votely.routes.election_routes import router as election_router
from votely.routes.realtime_routes import router as realtime_router
from votely.routes.user_routes import router as user_router
from votely.routes.vote_routes import vote_router
from votely.tally import TallyEngine
from votely.utils import utcnow

logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)


def error_body(message: str) -> dict:
    return {"status": False, "message": message}


async def votely_error_handler(request: Request, exc: VotelyError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.message))


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content=error_body(str(exc.detail)),
                        headers=getattr(exc, "headers", None))


async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{field}: {first.get('msg')}" if field else first.get("msg")
    else:
        message = "Please provide all required fields"
    return JSONResponse(status_code=400, content=error_body(message))


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content=error_body("Internal Server Error"))


def create_app(database=None, clock: Optional[Callable] = None) -> FastAPI:
    """
    Build the API.

    `database` is an async (motor-compatible) database handle; when omitted a
    client for MONGO_URI is opened on startup and closed on shutdown.
    """
    clock = clock or utcnow

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        client = None
        db = database
        if db is None:
            client = create_client()
            db = client[MONGO_DB]
        await ensure_indexes(db)

        registry = SubscriptionRegistry()
        broadcaster = RealtimeBroadcaster(registry)
        tally = TallyEngine(db, clock=clock)
        app.state.db = db
        app.state.clock = clock
        app.state.registry = registry
        app.state.broadcaster = broadcaster
        app.state.tally = tally
        app.state.ledger = VoteLedger(db, tally, broadcaster, clock=clock)
        logger.info("Votely API ready")

        yield

        if client is not None:
            client.close()
            logger.info("MongoDB connection closed")

    app = FastAPI(title="Votely - Online Voting API", version=__version__, lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(VotelyError, votely_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(auth_router)
    app.include_router(user_router)
    app.include_router(election_router)
    app.include_router(candidate_router)
    app.include_router(vote_router)
    app.include_router(realtime_router)

    @app.get("/", tags=["Root"])
    def read_root():
        return {"status": True, "message": "Welcome to the Votely API"}

    @app.get("/health", tags=["Root"])
    async def health_check():
        return {"status": "healthy", "database": "MongoDB"}

    @app.get("/favicon.ico", include_in_schema=False)
    async def favicon():
        return Response(status_code=204)

    return app
