from dataclasses import dataclass
from functools import wraps

from flask import g
from flask_jwt_extended import verify_jwt_in_request, get_jwt_identity, get_jwt
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import PyJWTError

from wishingwell.errors import NotAuthenticatedError


@dataclass(frozen=True)
class CurrentUser:
    id: str
    email: str | None


def require_user(fn):
    """Resolve the JWT into g.current_user, or fail with USER_NOT_AUTHENTICATED."""

    @wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            verify_jwt_in_request()
        except (JWTExtendedException, PyJWTError) as e:
            raise NotAuthenticatedError() from e
        user_id = get_jwt_identity()
        if not user_id:
            raise NotAuthenticatedError()
        g.current_user = CurrentUser(id=str(user_id), email=get_jwt().get("email"))
        return fn(*args, **kwargs)

    return wrapper
