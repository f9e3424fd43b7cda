from flask_jwt_extended import get_jwt, get_jwt_identity

import const
from app.errors.exceptions import Unauthorized


class Actor:
    """The principal behind a request, as issued by the auth service."""

    SYSTEM = None

    def __init__(self, id, role):
        self.id = str(id) if id is not None else None
        self.role = role

    def can_force_transition(self):
        return self.role in const.PRIVILEGED_ROLES or self is Actor.SYSTEM

    def is_admin(self):
        return self.role in const.ADMIN_ROLES

    def __repr__(self):
        return f"Actor(id={self.id!r}, role={self.role!r})"


Actor.SYSTEM = Actor(None, "system")


class AuthService:

    @staticmethod
    def get_current_actor():
        identity = get_jwt_identity()
        if identity is None:
            raise Unauthorized(message="Missing Authorization Header")
        role = get_jwt().get("role") or const.CUSTOMER
        return Actor(identity, role)
