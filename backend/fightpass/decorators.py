# Overview: Request decorators for API routes.

from dataclasses import dataclass
from functools import wraps

import jwt
from flask import current_app, g, jsonify, request

from .errors import Forbidden, Unauthorized


@dataclass(frozen=True)
class Principal:
    """Verified caller identity taken from the bearer token."""
    user_id: str
    email: str | None = None


def verify_bearer_token(token: str) -> Principal:
    """
    Verify a bearer token and return its principal.

    Token issuance lives outside this service; only signature, expiry and
    the user id claim are checked here.
    """
    try:
        claims = jwt.decode(
            token,
            current_app.config["JWT_SECRET"],
            algorithms=current_app.config.get("JWT_ALGORITHMS", ["HS256"]),
        )
    except jwt.PyJWTError:
        raise Unauthorized("Invalid token")

    user_id = str(claims.get("userId") or claims.get("sub") or "").strip()
    if not user_id:
        raise Unauthorized("Invalid token")
    return Principal(user_id=user_id, email=claims.get("email"))


def require_auth(f):
    """
    Require a verified principal.

    Sets g.principal. Returns 401 if:
    - No Authorization header
    - Invalid, expired or malformed token
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            err = Unauthorized("No token provided")
            return jsonify(err.to_dict()), err.status

        token = auth_header.split(" ", 1)[1].strip()
        try:
            g.principal = verify_bearer_token(token)
        except Unauthorized as err:
            return jsonify(err.to_dict()), err.status

        return f(*args, **kwargs)

    return decorated_function


def require_path_user(f):
    """
    Require the <user_id> path parameter to match the verified principal.

    Must be applied after @require_auth.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        principal = getattr(g, "principal", None)
        if principal is None:
            err = Unauthorized("Authentication required")
            return jsonify(err.to_dict()), err.status
        if kwargs.get("user_id") != principal.user_id:
            err = Forbidden("Cannot access another user's records")
            return jsonify(err.to_dict()), err.status
        return f(*args, **kwargs)

    return decorated_function
