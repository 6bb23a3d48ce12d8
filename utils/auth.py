"""Request identity and throttling helpers"""
import re
import time
from functools import wraps
from typing import Optional
from flask import request, jsonify, g
import logging

logger = logging.getLogger(__name__)

USER_ID_HEADER = 'X-User-Id'

# Opaque ids from the sign-in provider (uuids, emails hashes, ...)
_USER_ID_PATTERN = re.compile(r'^[A-Za-z0-9._:@-]{1,255}$')

# Simple in-memory rate limiting
rate_limit_storage = {}

# Sweep stale clients once this many keys are tracked
RATE_LIMIT_CLEANUP_THRESHOLD = 1000


def get_current_user_id() -> Optional[str]:
    """Opaque user identity set by the authentication layer, or None when signed out"""
    user_id = (request.headers.get(USER_ID_HEADER) or '').strip()
    if not user_id:
        return None
    if not _USER_ID_PATTERN.match(user_id):
        logger.warning(f"Ignoring malformed {USER_ID_HEADER} header from {request.remote_addr}")
        return None
    return user_id


def user_required(f):
    """Decorator to require a signed-in user; exposes it as g.user_id"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        user_id = get_current_user_id()
        if not user_id:
            return jsonify({
                "success": False,
                "error": "Sign in required for cloud sync."
            }), 401
        g.user_id = user_id
        return f(*args, **kwargs)
    return decorated_function


def rate_limit(max_requests=10, window_seconds=60):
    """Rate limiting decorator

    Args:
        max_requests: Maximum number of requests allowed
        window_seconds: Time window in seconds
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            client_id = get_current_user_id() or request.remote_addr
            key = f"{client_id}:{request.endpoint}"

            current_time = time.time()
            if len(rate_limit_storage) > RATE_LIMIT_CLEANUP_THRESHOLD:
                cleanup_rate_limits(window_seconds)

            timestamps = [
                timestamp for timestamp in rate_limit_storage.get(key, [])
                if current_time - timestamp < window_seconds
            ]

            if len(timestamps) >= max_requests:
                logger.warning(f"Rate limit exceeded for {client_id} on {request.endpoint}")
                return jsonify({
                    "success": False,
                    "error": f"Rate limit exceeded. Maximum {max_requests} requests per {window_seconds} seconds."
                }), 429

            timestamps.append(current_time)
            rate_limit_storage[key] = timestamps

            return f(*args, **kwargs)
        return decorated_function
    return decorator


def cleanup_rate_limits(window_seconds=3600):
    """Drop rate limit entries older than the window and forget idle clients"""
    current_time = time.time()

    keys_to_delete = []
    for key in rate_limit_storage:
        rate_limit_storage[key] = [
            timestamp for timestamp in rate_limit_storage[key]
            if current_time - timestamp < window_seconds
        ]
        if not rate_limit_storage[key]:
            keys_to_delete.append(key)

    for key in keys_to_delete:
        del rate_limit_storage[key]

    return len(keys_to_delete)
