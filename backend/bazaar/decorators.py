# Overview: Request decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

SYSTEM_ACTOR = "SYSTEM"
ACTOR_HEADER = "X-User-Id"


def with_actor(f):
    """
    Establish the acting user for audit fields.

    Authentication happens upstream; the gateway forwards the user id in the
    X-User-Id header. Sets g.actor_id (SYSTEM when the header is absent).

    Returns 400 if the header is present but blank or longer than the
    user_id column.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        raw = request.headers.get(ACTOR_HEADER)

        if raw is None:
            g.actor_id = SYSTEM_ACTOR
        else:
            actor = raw.strip()
            if not actor or len(actor) > 64:
                return jsonify({"error": f"Invalid {ACTOR_HEADER} header"}), 400
            g.actor_id = actor

        return f(*args, **kwargs)

    return decorated_function
