"""
Authentication Module

This module turns the bearer token issued by the external identity
provider into the caller identity used by the reporting endpoints.

Features:
- JWT decoding
- Role resolution
- Group normalization
- Role guards

Data Model:
- User ID
- Role (admin, manager, user)
- Groups

Security:
- Signature verification when a secret is configured
- Secure defaults (least privileged role)
- Error handling

Dependencies:
- FastAPI for security dependencies
- PyJWT for tokens
- logging for tracking

Author: Hourglass Development Team
"""

from fastapi import HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
import jwt
import logging
from typing import List

from hourglass.shared.config import JWT_SECRET, JWT_ALGORITHM, JWT_VERIFY_SIGNATURE
from hourglass.shared.models import Role

security = HTTPBearer()

logger = logging.getLogger(__name__)

USER_ID_FIELDS = ['user_id', 'sub', 'id', 'email']


def decode_token(token: str) -> dict:
    """
    Decode a bearer token.

    Args:
        token: Raw JWT

    Returns:
        dict: Token claims

    Notes:
        - Verifies signature only when JWT_SECRET is set
    """
    if JWT_VERIFY_SIGNATURE:
        return jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    return jwt.decode(token, options={"verify_signature": False})


def resolve_role(claims: dict, groups: List[str]) -> Role:
    """
    Pick the caller role from token claims.

    Args:
        claims: Decoded token
        groups: Uppercased group names

    Returns:
        Role: Explicit role claim, else group membership, else USER
    """
    role_claim = str(claims.get('role') or '').lower()
    if role_claim in {role.value for role in Role}:
        return Role(role_claim)
    if "ADMIN" in groups:
        return Role.ADMIN
    if "MANAGER" in groups:
        return Role.MANAGER
    return Role.USER


async def get_current_user(credentials: HTTPAuthorizationCredentials = Security(security)) -> dict:
    """
    Extract the caller identity from the JWT.

    Args:
        credentials: HTTP auth credentials

    Returns:
        dict: {"user_id", "role", "groups"}

    Raises:
        HTTPException: 401 for undecodable tokens or missing user ID
    """
    try:
        claims = decode_token(credentials.credentials)
    except jwt.PyJWTError as e:
        logger.warning(f"Rejected token: {str(e)}")
        raise HTTPException(status_code=401, detail=f"Authentication error: {str(e)}")

    groups = [
        group.upper()
        for group in (claims.get('groups') or claims.get('cognito:groups') or [])
    ]

    user_id = None
    for field in USER_ID_FIELDS:
        if claims.get(field):
            user_id = claims[field]
            break

    if not user_id:
        raise HTTPException(status_code=401, detail="No user ID found in token")

    role = resolve_role(claims, groups)
    logger.debug(f"Authenticated user {user_id} as {role.value}")

    return {
        "user_id": user_id,
        "role": role,
        "groups": groups
    }
