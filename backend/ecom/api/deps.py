from typing import Optional

from fastapi import Header, HTTPException

from ecom.services.auth_service import AuthError, decode_user_id


def get_current_user_id(
    authorization: Optional[str] = Header(None, alias="Authorization"),
) -> int:
    """
    Resolve the caller's user id from a ``Bearer`` JWT. The id is handed to
    services as a plain argument.
    """
    if not authorization:
        raise HTTPException(status_code=401, detail="Authorization header is missing")
    token = authorization.strip()
    if token.startswith("Bearer"):
        token = token[len("Bearer"):].strip()
    if not token:
        raise HTTPException(status_code=401, detail="Token is missing")
    try:
        return decode_user_id(token)
    except AuthError as e:
        raise HTTPException(status_code=401, detail=str(e))
