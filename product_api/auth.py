# ============================================
# product_api/auth.py: Shared-Secret Check
# ============================================
# Write routes require the pre-shared API key from settings. The key may
# arrive as x-api-key or, failing that, as the Authorization header.

import secrets
from typing import Optional

from fastapi import Header, Request

from .errors import AuthenticationRequired, InvalidAPIKey


async def require_api_key(
    request: Request,
    x_api_key: Optional[str] = Header(None),
    authorization: Optional[str] = Header(None),
) -> None:
    api_key = x_api_key or authorization
    if not api_key:
        raise AuthenticationRequired()

    expected = request.app.state.settings.API_KEY
    if not secrets.compare_digest(api_key.encode(), expected.encode()):
        raise InvalidAPIKey()
