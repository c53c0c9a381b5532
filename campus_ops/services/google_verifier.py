"""
Server-side verification of Google Identity Services ID tokens.

The browser hands us the `credential` string it got from Google; we ask
Google's tokeninfo endpoint to decode it and then check the claims ourselves:

  - aud matches GOOGLE_CLIENT_ID (a token minted for another app is rejected)
  - iss is Google
  - exp is in the future
  - email is present and verified

Only a profile that passes every check reaches auth_service.google_sign_in.
"""

import time
from typing import Optional

import httpx

from campus_ops.core.config import get_settings
from campus_ops.core.exceptions import Unauthorized
from campus_ops.core.logging import get_logger
from campus_ops.schemas.user import GoogleSignIn

settings = get_settings()
logger = get_logger(__name__)

GOOGLE_ISSUERS = frozenset({"accounts.google.com", "https://accounts.google.com"})

# Swapped for an httpx.MockTransport in tests
_transport: Optional[httpx.AsyncBaseTransport] = None


async def _fetch_token_info(credential: str) -> dict:
    try:
        async with httpx.AsyncClient(
            transport=_transport, timeout=settings.GOOGLE_VERIFY_TIMEOUT_SECONDS
        ) as client:
            response = await client.get(settings.GOOGLE_TOKENINFO_URL, params={"id_token": credential})
    except httpx.RequestError as e:
        logger.error("google_tokeninfo_unreachable", error=str(e))
        raise Unauthorized("Could not verify Google credential") from e

    if response.status_code != 200:
        logger.warning("google_token_rejected", status=response.status_code)
        raise Unauthorized("Invalid Google ID token")

    try:
        return response.json()
    except ValueError as e:
        raise Unauthorized("Invalid Google ID token") from e


async def verify_google_credential(credential: str) -> GoogleSignIn:
    """Verify an ID token and return the profile it vouches for."""
    if not settings.GOOGLE_CLIENT_ID:
        logger.error("google_sign_in_not_configured")
        raise Unauthorized("Google sign-in is not configured")

    info = await _fetch_token_info(credential)

    if info.get("aud") != settings.GOOGLE_CLIENT_ID:
        logger.warning("google_token_wrong_audience", aud=info.get("aud"))
        raise Unauthorized("Google token was not issued for this application")

    if info.get("iss") not in GOOGLE_ISSUERS:
        raise Unauthorized("Google token has an unexpected issuer")

    try:
        expires_at = int(info.get("exp", 0))
    except (TypeError, ValueError):
        expires_at = 0
    if expires_at <= time.time():
        raise Unauthorized("Google token has expired")

    email = (info.get("email") or "").strip()
    if not email:
        raise Unauthorized("Google token is missing an email")
    # tokeninfo returns claims as strings
    if str(info.get("email_verified", "")).lower() != "true":
        raise Unauthorized("Google account email is not verified")

    if not info.get("sub"):
        raise Unauthorized("Google token is missing a subject")

    return GoogleSignIn(
        email=email,
        name=(info.get("name") or email.split("@")[0])[:150],
        avatar_url=info.get("picture"),
        provider_id=info["sub"],
    )
