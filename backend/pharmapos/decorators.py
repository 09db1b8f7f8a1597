# Overview: Request decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .extensions import db
from .models import User

# Set by the upstream authentication gateway after it has verified the caller.
USER_ID_HEADER = "X-User-Id"


def require_auth(f):
    """
    Establish the caller identity from the gateway header.

    Sets g.current_user. The POS core trusts this identity; it does not
    verify credentials itself.

    Returns 401 if the header is missing, malformed, or names an unknown or
    deactivated user.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        raw = request.headers.get(USER_ID_HEADER, "").strip()
        if not raw.isdigit():
            return jsonify({"error": "Authentication required"}), 401

        user = db.session.get(User, int(raw))
        if user is None or not user.is_active:
            return jsonify({"error": "Invalid or inactive user"}), 401

        g.current_user = user
        return f(*args, **kwargs)

    return decorated_function


def require_role(*roles: str):
    """Require g.current_user.role to be one of `roles` (use after @require_auth)."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            user = getattr(g, "current_user", None)
            if user is None:
                return jsonify({"error": "Authentication required"}), 401
            if user.role not in roles:
                return jsonify({
                    "error": "Permission denied",
                    "required_role": list(roles),
                }), 403
            return f(*args, **kwargs)

        return decorated_function

    return decorator
