import hmac
import logging
from typing import Optional
from fastapi import Header, HTTPException, status
from app.config import API_KEY

logger = logging.getLogger(__name__)

_UNAUTHORIZED = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail={"error": {"code": "UNAUTHORIZED", "message": "Invalid or missing API key"}},
)


async def require_api_key(x_api_key: Optional[str] = Header(None, alias="X-API-Key")) -> str:
    """Every endpoint exposes merchant transaction data; compare the key in constant time."""
    if not x_api_key or not hmac.compare_digest(x_api_key.encode(), API_KEY.encode()):
        logger.warning("Rejected request with %s API key", "missing" if not x_api_key else "invalid")
        raise _UNAUTHORIZED
    return x_api_key
