from fastapi import HTTPException, Header
from app.core.config import settings

async def verify_bearer_token(authorization: str = Header(None)):
    """
    Verify the bearer token Vapi sends with every tool call
    (configured on the assistant's server credentials).
    An empty VAPI_BEARER_TOKEN disables the gate.
    """
    if not settings.VAPI_BEARER_TOKEN:
        return True

    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or token.strip() != settings.VAPI_BEARER_TOKEN:
        raise HTTPException(status_code=401, detail="Invalid bearer token")
    return True
