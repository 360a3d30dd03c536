import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from backend.auth import jwt_handler
from backend.core.errors import AuthError, AuthorizationError
from backend.database import get_db
from backend.models.user import ROLE_ADMIN, ROLE_STUDENT, ROLE_TUTOR, User

security = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    if credentials is None or not credentials.credentials:
        raise AuthError("No token provided")

    try:
        payload = jwt_handler.decode_access_token(credentials.credentials)
    except jwt.PyJWTError as exc:
        raise AuthError("Invalid token") from exc

    user_id = payload.get("userId")
    if not isinstance(user_id, int):
        raise AuthError("Invalid token subject")

    user = db.get(User, user_id)
    if user is None:
        raise AuthError("User not found")
    return user


def require_student(current_user: User = Depends(get_current_user)) -> User:
    if current_user.role != ROLE_STUDENT:
        raise AuthorizationError("Only students can perform this action")
    return current_user


def require_tutor(current_user: User = Depends(get_current_user)) -> User:
    # The tutor role is only granted by an approved application.
    if current_user.role != ROLE_TUTOR:
        raise AuthorizationError("Only approved tutors can perform this action")
    return current_user


def require_admin(current_user: User = Depends(get_current_user)) -> User:
    if current_user.role != ROLE_ADMIN:
        raise AuthorizationError("Only admins can perform this action")
    return current_user
