"""Bearer-token caller resolution.

Tokens are issued elsewhere; this module only verifies them and maps the
``sub``/``id`` claim onto a :class:`~laborhub.models.User` row so the rest of
the app can rely on Flask-Login's ``current_user``.
"""

from functools import wraps

import jwt
from flask import abort, current_app
from flask_login import current_user

from laborhub.extensions import db, login_manager
from laborhub.models import User

ROLE_WORKER = "worker"
ROLE_CUSTOMER = "customer"


def extract_bearer_token(header_value):
    if header_value and header_value.startswith("Bearer "):
        return header_value[7:].strip() or None
    return None


def decode_access_token(token):
    """Return the verified claims, or None when the token is expired or invalid."""
    try:
        return jwt.decode(
            token,
            current_app.config["JWT_SECRET_KEY"],
            algorithms=[current_app.config["JWT_ALGORITHM"]],
            leeway=current_app.config["JWT_LEEWAY"],
        )
    except jwt.ExpiredSignatureError:
        current_app.logger.info("Rejected expired bearer token")
    except jwt.InvalidTokenError as exc:
        current_app.logger.info("Rejected invalid bearer token: %s", exc)
    return None


@login_manager.request_loader
def load_user_from_request(request):
    token = extract_bearer_token(request.headers.get("Authorization"))
    if not token:
        return None
    claims = decode_access_token(token)
    if not claims:
        return None

    raw_id = claims.get("sub", claims.get("id"))
    try:
        user_id = int(raw_id)
    except (TypeError, ValueError):
        return None

    user = db.session.get(User, user_id)
    if not user or not user.is_active_user:
        return None
    return user


@login_manager.unauthorized_handler
def unauthorized():
    abort(401)


def role_required(*roles):
    def wrapper(func):
        @wraps(func)
        def inner(*args, **kwargs):
            if not current_user.is_authenticated:
                abort(401)
            if current_user.role not in roles:
                abort(403)
            return func(*args, **kwargs)

        return inner

    return wrapper
