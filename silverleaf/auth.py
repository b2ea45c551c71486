"""
Portal token authentication.
Login routes issue HS256 tokens; when PORTAL_JWT_SECRET is set, every /api/
route except the public ones requires a valid Bearer token.
"""
import hashlib
import logging
from datetime import datetime, timedelta, timezone

import jwt
from flask import request, jsonify, g

from .config import get_jwt_secret

logger = logging.getLogger(__name__)

TOKEN_TTL = timedelta(hours=12)

# Routes that don't require authentication
PUBLIC_PREFIXES = [
    '/api/auth/',          # Login endpoints
]

PUBLIC_EXACT = [
    '/api/test-gemini',    # Connectivity probe
]


def hash_password(password: str) -> str:
    """SHA-256 hex digest, the format stored in the faculty/student datasets."""
    return hashlib.sha256(password.encode('utf-8')).hexdigest()


def issue_token(user_id: str, role: str, email: str = ''):
    """Sign a token for a logged-in user. Returns None when auth is disabled."""
    secret = get_jwt_secret()
    if not secret:
        return None
    now = datetime.now(timezone.utc)
    payload = {
        'sub': user_id,
        'role': role,
        'email': email,
        'iat': now,
        'exp': now + TOKEN_TTL,
    }
    return jwt.encode(payload, secret, algorithm='HS256')


def validate_token(token):
    """
    Validate a portal token and return the decoded payload.
    Returns None if invalid.
    """
    try:
        return jwt.decode(token, get_jwt_secret(), algorithms=['HS256'])
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError:
        return None


def is_public_route(path):
    """Check if a route is public (no auth required)."""
    if path in PUBLIC_EXACT:
        return True
    for prefix in PUBLIC_PREFIXES:
        if path.startswith(prefix):
            return True
    return False


def init_auth(app):
    """
    Register the before_request auth hook on the Flask app.
    The hook is a no-op while no signing secret is configured.
    """
    @app.before_request
    def check_auth():
        if not get_jwt_secret():
            return None

        # Skip non-API routes
        if not request.path.startswith('/api/'):
            return None

        if request.method == 'OPTIONS' or is_public_route(request.path):
            return None

        auth_header = request.headers.get('Authorization', '')
        if not auth_header.startswith('Bearer '):
            return jsonify({'error': 'Authentication required'}), 401

        payload = validate_token(auth_header[7:])
        if payload is None:
            logger.info("Rejected invalid or expired token for %s", request.path)
            return jsonify({'error': 'Invalid or expired token'}), 401

        g.user_id = payload.get('sub')
        g.user_role = payload.get('role', '')
        g.user_email = payload.get('email', '')
