"""
Authentication middleware for protecting Flask routes

This module provides:
- load_session: resolve the request's bearer token to a Principal (or None)
- operator_required: run the access gate and hand the Principal to the view
  as an explicit ``principal`` keyword argument
"""

import logging
from functools import wraps
from typing import Optional

from flask import request, current_app

from auth_utils import Principal, check_operator, decode_token, parse_bearer_header
from db_utils import get_db_connection

logger = logging.getLogger(__name__)


def find_session_user(user_id: str) -> Optional[dict]:
    """Load an active user row for a session"""
    with get_db_connection() as conn:
        with conn.cursor() as cur:
            cur.execute("""
                SELECT id, name, is_active
                FROM users
                WHERE id = %s
            """, (user_id,))
            return cur.fetchone()


def load_session(auth_header: Optional[str]) -> Optional[Principal]:
    """
    Resolve an Authorization header to the session principal

    Returns None for a missing, malformed, expired or unknown session.
    """
    token = parse_bearer_header(auth_header)
    if not token:
        return None

    try:
        payload = decode_token(token)
    except ValueError as e:
        logger.info(f"Rejected session token: {e}")
        return None

    if payload.get('type') != 'access' or not payload.get('user_id'):
        return None

    user = find_session_user(payload['user_id'])
    if not user or not user.get('is_active', True):
        return None

    return Principal(user_id=str(user['id']), name=user['name'])


def operator_required(f):
    """
    Decorator requiring the catalog operator's session

    Usage:
        @bp.route('/api/admin/thing', methods=['POST'])
        @operator_required
        def thing(principal):
            ...

    Gate failures raise Unauthorized/AccessDenied, rendered by the blueprint's
    CatalogError handler as 401/403 before the request body is looked at.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        principal = load_session(request.headers.get('Authorization'))
        check_operator(principal, current_app.config.get('ADMIN_USERNAME'))
        return f(*args, principal=principal, **kwargs)

    return decorated_function
