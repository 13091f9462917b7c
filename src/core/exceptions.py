from typing import Optional


class StatisticsError(Exception):
    """Базовое исключение подсистемы статистики"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationFailed(StatisticsError):
    """Malformed submission or query, rejected before any transaction opens"""

    def __init__(self, field: str, message: str):
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


class UserNotFound(StatisticsError):
    """The authenticated identity no longer maps to a stored user"""

    def __init__(self, user_id: int):
        super().__init__(f"User {user_id} not found")
        self.user_id = user_id


class ProfileNotFound(StatisticsError):
    """A prerequisite profile row is missing and could not be created"""

    def __init__(self, user_id: int):
        super().__init__(f"Profile for user {user_id} not found")
        self.user_id = user_id


class StorageFailure(StatisticsError):
    """The transaction could not commit; nothing was persisted, safe to retry"""

    def __init__(self, message: str, original: Optional[Exception] = None):
        super().__init__(message)
        self.original = original
