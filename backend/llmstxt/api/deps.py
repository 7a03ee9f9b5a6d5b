"""Dependency injection for FastAPI routes."""

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from llmstxt.config import Settings, get_settings
from llmstxt.database import get_db
from llmstxt.resources import Resources


def get_resources(request: Request) -> Resources:
    """Shared connections opened in the app lifespan."""
    return request.app.state.resources


# Type aliases for dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db)]
AppSettings = Annotated[Settings, Depends(get_settings)]
AppResources = Annotated[Resources, Depends(get_resources)]
