# main.py
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from identity_service.DB.database import create_tables
from identity_service.config import settings
from identity_service.routes.auth import auth_router
from identity_service.routes.deps import limiter
from identity_service.routes.oauth import oauth_router
from identity_service.routes.users import users_router
from identity_service.utils.Error_Handling import register_exception_handlers
from identity_service.utils.cronjobs import start_cron_jobs, stop_cron_jobs
from shared.config import shared_settings
from shared.db_manager import close_engine
from shared.utils.logger import TsLogger

logger = TsLogger(__name__)


# FastAPI lifespan event
@asynccontextmanager
async def lifespan(application: FastAPI):
    try:
        if settings.DB_AUTO_CREATE:
            await create_tables()
        start_cron_jobs()
        yield
    finally:
        stop_cron_jobs()
        await close_engine()


common_args = {
    "lifespan": lifespan,
    "title": f"{shared_settings.APP_NAME}",
    "description": "Email/password and OAuth authentication API",
    "version": settings.APP_VERSION,
}

common_args.update({
    "openapi_url": "/openapi.json" if shared_settings.ENVIRONMENT != 'production' else None,
    "docs_url": "/docs" if shared_settings.ENVIRONMENT != 'production' else None,
})

app = FastAPI(**common_args)

############ Rate Limiter ##########
app.state.limiter = limiter  # type: ignore[attr-defined]
register_exception_handlers(app)

if shared_settings.ENVIRONMENT == 'production':
    cors = shared_settings.BACKEND_CORS_ORIGINS
else:
    cors = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
        *shared_settings.BACKEND_CORS_ORIGINS,
    ]

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors,
    allow_credentials=True,
    allow_methods=["*"],  # Allows all methods
    allow_headers=["*"],  # Allows all headers
)


@app.middleware("http")
async def add_request_headers(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    token = logger.bind_request_id(request_id)
    try:
        response = await call_next(request)
    finally:
        logger.reset_request_id(token)
    response.headers["X-Request-ID"] = request_id
    response.headers["X-Robots-Tag"] = "noindex, nofollow"  # Add the X-Robots-Tag header to disallow indexing
    return response


@app.get("/")
async def root():
    return {
        "status": settings.APP_STATUS,
        "version": settings.APP_VERSION,
    }


@app.get("/health", tags=["Health"])
def health_check():
    return {"status": "identity-service running"}


app.include_router(router=auth_router)
app.include_router(router=oauth_router)
app.include_router(router=users_router)
