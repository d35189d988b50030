"""Request identity for the Turnwear API.

Routes that touch user data depend on :func:`get_owner_id`, which reads the
``Authorization: Bearer <token>`` header and asks the identity provider on
``app.state`` who the token belongs to.
"""

from __future__ import annotations

import logging

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from turnwear.core.errors import Unauthorized

logger = logging.getLogger(__name__)

_bearer = HTTPBearer(auto_error=False)


def get_owner_id(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
) -> str:
    """Resolve the verified owner id of the current request.

    Raises:
        HTTPException: 401 if the header is missing or the token is rejected.
    """
    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=401, detail=Unauthorized.default_message)

    identity = request.app.state.identity
    try:
        return identity.verify_identity(credentials.credentials)
    except Unauthorized as e:
        raise HTTPException(status_code=e.status_code, detail=e.message) from e
