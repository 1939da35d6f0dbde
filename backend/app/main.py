import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.cors import CORSMiddleware

from backend.app.api.v1.router import api_router
from backend.app.core.config import settings
from backend.app.core.errors import WalletError
from backend.app.core.logging_config import configure_logging
from backend.app.db.base import Base, engine
from backend.app.security.transport import get_transport

# --- Import models so SQLAlchemy registers the tables ---
from backend.app import models  # noqa: F401

logger = logging.getLogger(__name__)


# --- LIFESPAN: create tables and load the transport key on startup ---
@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    get_transport()
    logger.info("%s %s started", settings.PROJECT_NAME, settings.PROJECT_VERSION)
    yield


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.PROJECT_VERSION,
    openapi_url=f"{settings.API_PREFIX}/openapi.json",
    lifespan=lifespan,
)

if settings.BACKEND_CORS_ORIGINS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[str(origin) for origin in settings.BACKEND_CORS_ORIGINS],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.exception_handler(WalletError)
async def wallet_error_handler(request: Request, exc: WalletError):
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


app.include_router(api_router, prefix=settings.API_PREFIX)


@app.get("/")
def root():
    return {"message": f"{settings.PROJECT_NAME} signing gateway OK"}
