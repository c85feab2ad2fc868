# fieldops_api/common/auth.py
from __future__ import annotations

from functools import wraps
from typing import Optional, Set

from flask_jwt_extended import jwt_required, get_jwt, get_jwt_identity

from fieldops_api.common.http import fail


def _claim_roles() -> Set[str]:
    claims = get_jwt() or {}
    return set(claims.get("roles") or [])


def current_email() -> Optional[str]:
    """Email of the authenticated caller (the JWT identity)."""
    uid = get_jwt_identity()
    return str(uid) if uid else None


def requires_roles(*codes: str):
    """
    Require that the current user has AT LEAST ONE of the given role codes.
    - Roles come from the 'roles' claim issued with the token.
    - 'admin' role always passes.
    """
    def outer(fn):
        @wraps(fn)
        @jwt_required()
        def inner(*args, **kwargs):
            if get_jwt_identity() is None:
                return fail("Unauthorized", status=401)

            roles = _claim_roles()
            if "admin" in roles:
                return fn(*args, **kwargs)

            if codes and not any(r in roles for r in codes):
                return fail("Forbidden", status=403)

            return fn(*args, **kwargs)
        return inner
    return outer
