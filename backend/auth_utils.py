"""
Authentication utilities for session tokens and the operator access gate

This module provides core authentication functionality including:
- JWT access token generation and validation (sessions are issued elsewhere;
  generate_access_token exists for tooling and tests)
- The Principal value passed explicitly into every privileged operation
- check_operator: the single-operator access gate
"""

import os
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

import config
from errors import AccessDenied, Unauthorized

JWT_ALGORITHM = 'HS256'
ACCESS_TOKEN_EXPIRY = timedelta(minutes=15)


@dataclass(frozen=True)
class Principal:
    """The authenticated caller of an operation"""
    user_id: str
    name: str


def _jwt_secret() -> str:
    secret = os.getenv('JWT_SECRET')
    if not secret:
        raise ValueError("JWT_SECRET environment variable must be set")
    return secret


def generate_access_token(user_id: str) -> str:
    """
    Generate JWT access token (15 minutes expiry)

    Args:
        user_id: UUID of the user

    Returns:
        JWT token as string
    """
    payload = {
        'user_id': str(user_id),
        'exp': datetime.now(timezone.utc) + ACCESS_TOKEN_EXPIRY,
        'iat': datetime.now(timezone.utc),
        'type': 'access'
    }
    return jwt.encode(payload, _jwt_secret(), algorithm=JWT_ALGORITHM)


def decode_token(token: str) -> dict:
    """
    Decode and validate JWT token

    Raises:
        ValueError: If token is expired or invalid
    """
    try:
        return jwt.decode(token, _jwt_secret(), algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise ValueError('Token has expired')
    except jwt.InvalidTokenError:
        raise ValueError('Invalid token')


def parse_bearer_header(auth_header: Optional[str]) -> Optional[str]:
    """Return the token from an 'Authorization: Bearer <token>' header, or None"""
    if not auth_header:
        return None
    parts = auth_header.split(' ')
    if len(parts) != 2 or parts[0] != 'Bearer' or not parts[1]:
        return None
    return parts[1]


def check_operator(principal: Optional[Principal], operator_name: Optional[str] = None) -> Principal:
    """
    Access gate for privileged operations

    Args:
        principal: The caller's session principal, or None when there is no session
        operator_name: Name of the single authorized operator (defaults to config.ADMIN_USERNAME)

    Returns:
        The principal, unchanged

    Raises:
        Unauthorized: No session
        AccessDenied: Session belongs to anyone but the operator
    """
    if principal is None:
        raise Unauthorized()
    if principal.name != (operator_name or config.ADMIN_USERNAME):
        raise AccessDenied()
    return principal
