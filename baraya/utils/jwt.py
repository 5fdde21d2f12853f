"""
Token codec for the bearer token.

The client never verifies the signature (the server does). Claims are
read only for identity and expiry UX. Every decode failure is treated
as an expired token.
"""

import logging
import time
from datetime import datetime
from typing import Optional

from jose import jwt, JWTError
from pydantic import ValidationError

from baraya.core.exceptions import MalformedTokenError
from baraya.models.auth import Identity, TokenPayload, UserRole

logger = logging.getLogger(__name__)

# Claim keys tried in order when the token predates the current contract
SUBJECT_KEYS = ("sub", "id", "userId", "uid")
NAME_KEYS = ("fullName", "name")
DEFAULT_FULL_NAME = "User"


def decode_token(token: str) -> TokenPayload:
    """
    Decode token claims without verifying the signature.

    Args:
        token: Compact JWS string

    Returns:
        TokenPayload with the embedded claims

    Raises:
        MalformedTokenError: If the token is not a decodable JWT
    """
    if not token or not isinstance(token, str):
        raise MalformedTokenError("Token is empty")
    try:
        claims = jwt.get_unverified_claims(token)
    except JWTError as e:
        raise MalformedTokenError(f"Cannot decode token: {e}") from e
    try:
        return TokenPayload.model_validate(claims)
    except ValidationError as e:
        raise MalformedTokenError(f"Token claims are malformed: {e.error_count()} error(s)") from e


def is_token_expired(token: str, now: Optional[float] = None) -> bool:
    """
    Check whether a token is expired.

    Fail-closed: an undecodable token or a missing `exp` claim counts as
    expired. A token whose `exp` equals the current second is expired.

    Args:
        token: Bearer token
        now: Current epoch seconds (defaults to time.time())
    """
    try:
        payload = decode_token(token)
    except MalformedTokenError as e:
        logger.debug(f"Treating undecodable token as expired: {e}")
        return True

    if payload.exp is None:
        return True

    current = time.time() if now is None else now
    return payload.exp <= current


def extract_identity(token: str) -> Optional[Identity]:
    """
    Project token claims into an Identity.

    Returns:
        Identity, or None if the token cannot be decoded or has no subject
    """
    try:
        payload = decode_token(token)
    except MalformedTokenError as e:
        logger.warning(f"Failed to extract identity: {e}")
        return None

    claims = payload.model_dump(by_alias=True)

    user_id = next((claims[key] for key in SUBJECT_KEYS if claims.get(key)), None)
    if user_id is None:
        logger.warning("Token has no subject claim")
        return None

    full_name = next((claims[key] for key in NAME_KEYS if claims.get(key)), DEFAULT_FULL_NAME)

    return Identity(
        user_id=str(user_id),
        full_name=str(full_name),
        role=_parse_role(payload.role),
    )


def get_token_expiration(token: str) -> Optional[datetime]:
    """Expiry of the token as an aware UTC datetime, or None."""
    try:
        payload = decode_token(token)
    except MalformedTokenError:
        return None
    return payload.expires_at


def _parse_role(raw: Optional[str]) -> UserRole:
    if not raw:
        return UserRole.USER
    try:
        return UserRole(str(raw).upper())
    except ValueError:
        logger.warning(f"Unknown role claim {raw!r}, treating as USER")
        return UserRole.USER
