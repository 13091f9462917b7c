from fastapi import HTTPException, status

from src.core.exceptions import (
    StatisticsError,
    ValidationFailed,
    UserNotFound,
    ProfileNotFound,
    StorageFailure,
)
from src.logs import api_logger


def to_http_exception(exc: StatisticsError) -> HTTPException:
    """Перевод доменных исключений в HTTP-ответы"""
    if isinstance(exc, ValidationFailed):
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"field": exc.field, "message": exc.message},
        )
    if isinstance(exc, UserNotFound):
        # Сессия указывает на удаленного пользователя: клиент должен войти заново
        return HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Session is no longer valid, please sign in again",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if isinstance(exc, ProfileNotFound):
        return HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Profile not found",
        )
    if isinstance(exc, StorageFailure):
        api_logger.error(f"Storage failure: {exc.message}: {exc.original}")
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database temporarily unavailable, please try again",
        )
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=exc.message,
    )
