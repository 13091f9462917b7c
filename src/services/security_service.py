from typing import Optional, Dict, Any
from jose import jwt, JWTError

from src.core import get_settings

settings = get_settings()


class SecurityService:
    """Проверка JWT, выданных внешним сервисом аутентификации"""

    @staticmethod
    def decode_token(token: str) -> Optional[Dict[str, Any]]:
        try:
            return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        except JWTError:
            return None

    @staticmethod
    def user_id_from_token(token: str) -> Optional[int]:
        """Id пользователя из access-токена; None если токен невалиден или просрочен"""
        payload = SecurityService.decode_token(token)
        if not payload or payload.get("type") != "access":
            return None

        try:
            return int(payload.get("sub"))
        except (TypeError, ValueError):
            return None
