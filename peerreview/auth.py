# peerreview/auth.py
"""
Authentication and authorization for the peer-review API.

Provides:
- password hashing (passlib)
- JWT issue / verification (python-jose)
- the current-user dependency for bearer tokens
- a declarative operation -> role table consumed by ``authorize``
"""

import logging
from datetime import datetime, timedelta
from typing import Optional, Dict, Any

from fastapi import Depends, Request, Security
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from passlib.context import CryptContext

from .errors import AuthenticationError, InvalidTokenError, AuthorizationError
from .models import User, STUDENT, TEACHER, ROLES

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

ANY_ROLE = ROLES
TEACHER_ONLY = (TEACHER,)

# Which roles may perform each operation. Routes never check roles themselves.
POLICY: Dict[str, tuple] = {
    "project:list": ANY_ROLE,
    "project:read": ANY_ROLE,
    "project:create": TEACHER_ONLY,
    "submission:create": ANY_ROLE,
    "submission:list": ANY_ROLE,
    "submission:grade": TEACHER_ONLY,
    "submission:comments": ANY_ROLE,
    "review:create": ANY_ROLE,
    "review:list-mine": ANY_ROLE,
    "comment:create": ANY_ROLE,
    "assignment:create": TEACHER_ONLY,
    "assignment:list": ANY_ROLE,
    "assignment:list-mine": ANY_ROLE,
    "assignment:update-status": ANY_ROLE,
    "notification:read": ANY_ROLE,
    "notification:update": ANY_ROLE,
    "analytics:overview": TEACHER_ONLY,
    "analytics:project": TEACHER_ONLY,
    "analytics:student": ANY_ROLE,  # narrowed to self for students in the route
}


class UserContext:
    """Identity carried by a verified token"""
    def __init__(self, user_id: int, email: str, role: str):
        self.user_id = user_id
        self.email = email
        self.role = role

    def is_teacher(self) -> bool:
        return self.role == TEACHER

    def is_student(self) -> bool:
        return self.role == STUDENT

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.user_id, "email": self.email, "role": self.role}


def make_password_context(rounds: int) -> CryptContext:
    return CryptContext(
        schemes=["pbkdf2_sha256"],
        deprecated="auto",
        pbkdf2_sha256__default_rounds=rounds,
    )


def create_access_token(user, settings) -> str:
    expires = datetime.utcnow() + timedelta(hours=settings.token_ttl_hours)
    claims = {"id": user.id, "email": user.email, "role": user.role, "exp": expires}
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str, settings) -> UserContext:
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError as e:
        logger.info(f"Rejected token: {e}")
        raise InvalidTokenError()

    if not all(key in payload for key in ("id", "email", "role")):
        raise InvalidTokenError()
    return UserContext(user_id=payload["id"], email=payload["email"], role=payload["role"])


def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security),
) -> UserContext:
    """
    Resolve the caller from the ``Authorization: Bearer`` header.

    A valid token whose user no longer exists (e.g. after a database reset)
    is answered with 401.
    """
    if not credentials or not credentials.credentials:
        raise AuthenticationError()
    claims = decode_access_token(credentials.credentials.strip(), request.app.state.settings)

    db = request.app.state.session_factory()
    try:
        user = db.query(User).filter(User.id == claims.user_id).first()
    finally:
        db.close()
    if user is None:
        logger.info(f"Token for unknown user {claims.user_id}")
        raise AuthenticationError("User not found")
    return UserContext(user_id=user.id, email=user.email, role=user.role)


def authorize(operation: str):
    """
    Dependency factory guarding a route by the POLICY table.

    Usage:
        @router.post("/projects")
        def create_project(user: UserContext = Depends(authorize("project:create"))):
            ...
    """
    allowed_roles = POLICY[operation]

    async def dependency(user: UserContext = Depends(get_current_user)) -> UserContext:
        if user.role not in allowed_roles:
            logger.warning(f"User {user.user_id} ({user.role}) denied {operation}")
            if allowed_roles == TEACHER_ONLY:
                raise AuthorizationError("Teacher access required")
            raise AuthorizationError(f"Access denied. Required role(s): {', '.join(allowed_roles)}")
        return user

    return dependency
