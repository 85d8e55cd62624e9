"""API key guard for the project and branding generation routes."""

import logging
import secrets

from fastapi import Depends
from fastapi import HTTPException
from fastapi.security import APIKeyHeader

from docgen.core.config import settings

logger = logging.getLogger(__name__)

api_key_header = APIKeyHeader(name="X-API-Key")

INVALID_KEY_DETAIL = "Invalid API Key"


async def verify_api_key(key: str = Depends(api_key_header)) -> bool:
    """Admits a request to the /api routes only when its X-API-Key matches `settings.api_key`.

    A server started without API_KEY refuses every request.

    Raises:
        HTTPException: 403 when the key is wrong or the server has none configured.
    """
    if not settings.api_key:
        logger.critical("API_KEY is not configured; refusing all project and branding generation requests.")
        raise HTTPException(status_code=403, detail=INVALID_KEY_DETAIL)

    if not secrets.compare_digest(key.encode(), settings.api_key.encode()):
        logger.warning("Rejected generation API request with an invalid X-API-Key")
        raise HTTPException(status_code=403, detail=INVALID_KEY_DETAIL)
    return True
