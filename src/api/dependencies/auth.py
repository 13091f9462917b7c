from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.database import get_async_session
from src.api.errors import to_http_exception
from src.core.exceptions import UserNotFound
from src.services.security_service import SecurityService
from src.services.user_service import UserService
from src.models.user import User

# Токены выдает внешний сервис аутентификации
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_async_session)
) -> User:
    """
    Пользователь из Bearer-токена.

    Raises:
        HTTPException: 401 if the token is invalid, or if it is valid but
            the account behind it has been deleted
    """
    user_id = SecurityService.user_id_from_token(token)
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = await UserService.get_by_id(db, user_id)
    if not user:
        raise to_http_exception(UserNotFound(user_id))
    return user


async def get_current_active_user(
    current_user: User = Depends(get_current_user),
) -> User:
    if not current_user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Inactive user",
        )
    return current_user
