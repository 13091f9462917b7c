from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Boolean

from src.db.base import Base


class User(Base):
    """Учетная запись; создается и удаляется внешней системой аутентификации"""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, nullable=False, index=True)
    username = Column(String, unique=True, nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
