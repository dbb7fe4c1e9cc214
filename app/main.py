import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api_routers.v1 import api_router
from app.features.health.routes.health import router as health_router
from app.platform.config import settings
from app.platform.db.session import dispose_engine, init_models
from app.platform.exceptions import add_exception_handlers

# Configure logging to show INFO level messages
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_models()
    yield
    await dispose_engine()


app = FastAPI(
    title=f"{settings.APP_NAME} API",
    description="Crawls a website and runs an accessibility analysis on every page",
    version="1.0.0",
    debug=settings.DEBUG,
    lifespan=lifespan,
)


# Root endpoint for basic info
@app.get("/", tags=["Info"])
def root():
    return {
        "app_name": f"{settings.APP_NAME} API",
        "description": "Same-domain accessibility crawler with live progress streaming.",
        "version": "1.0.0",
        "docs_url": "/docs",
        "api_base": "/api/v1",
        "progress_ws": "/api/v1/ws/progress",
    }


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

add_exception_handlers(app)

app.include_router(health_router)
app.include_router(api_router, prefix="/api/v1")
