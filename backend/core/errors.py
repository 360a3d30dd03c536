from fastapi import HTTPException, status


class TutoringError(HTTPException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, detail: str) -> None:
        super().__init__(status_code=self.status_code, detail=detail)


class InvalidInputError(TutoringError):
    status_code = status.HTTP_400_BAD_REQUEST


class AuthError(TutoringError):
    status_code = status.HTTP_401_UNAUTHORIZED


class AuthorizationError(TutoringError):
    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(TutoringError):
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(TutoringError):
    status_code = status.HTTP_409_CONFLICT


class InternalError(TutoringError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


DATABASE_UNAVAILABLE = 'Database unavailable. Verify DATABASE_URL and database credentials.'
