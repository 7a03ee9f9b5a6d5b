"""FastAPI application entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from llmstxt import __version__
from llmstxt.api.routes import generate, llmstxt, webhooks
from llmstxt.config import get_settings
from llmstxt.resources import open_resources
from llmstxt.workers.celery_app import configure_logging


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    configure_logging(settings.log_level)
    async with open_resources(settings) as resources:
        app.state.resources = resources
        yield
    # Shutdown closes resources on context exit


settings = get_settings()

app = FastAPI(
    title=settings.app_name,
    description="Automatically generate llms.txt files for websites",
    version=__version__,
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(generate.router, prefix="/api", tags=["generate"])
app.include_router(llmstxt.router, prefix="/api", tags=["llmstxt"])
app.include_router(webhooks.router, prefix="/api")


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": settings.app_name,
        "version": __version__,
        "docs": "/docs",
    }
