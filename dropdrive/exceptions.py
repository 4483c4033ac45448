# Filename: dropdrive/exceptions.py
from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse


class DriveError(HTTPException):
    """Base error carrying a stable kind next to the HTTP status."""

    kind = "Error"
    status_code_default = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, detail: str, headers=None) -> None:
        super().__init__(status_code=self.status_code_default, detail=detail, headers=headers)


class UnauthorizedError(DriveError):
    kind = "Unauthorized"
    status_code_default = status.HTTP_401_UNAUTHORIZED

    def __init__(self, detail: str = "Could not validate credentials") -> None:
        super().__init__(detail, headers={"WWW-Authenticate": "Bearer"})


class NotFoundError(DriveError):
    kind = "NotFound"
    status_code_default = status.HTTP_404_NOT_FOUND


class BadRequestError(DriveError):
    kind = "BadRequest"
    status_code_default = status.HTTP_400_BAD_REQUEST


class QuotaExceededError(BadRequestError):
    pass


class InvalidLocationError(BadRequestError):
    pass


class StorageIOError(DriveError):
    kind = "IOError"
    status_code_default = status.HTTP_500_INTERNAL_SERVER_ERROR


async def drive_error_handler(request: Request, exc: DriveError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.kind, "detail": exc.detail},
        headers=exc.headers,
    )
