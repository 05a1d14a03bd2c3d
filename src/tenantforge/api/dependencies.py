"""Shared API dependencies."""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from tenantforge.config import Settings, get_settings
from tenantforge.core.cache import RedisCache, get_cache
from tenantforge.core.database import get_db


# Type alias for database session dependency
DBSession = Annotated[AsyncSession, Depends(get_db)]

AppSettings = Annotated[Settings, Depends(get_settings)]

Cache = Annotated[RedisCache, Depends(get_cache)]
