from datetime import datetime
from sqlalchemy import Column, Integer, DateTime, ForeignKey, Numeric, CheckConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship

from src.db.base import Base
from src.services.aggregation import default_difficulty_buckets


class UserStatistic(Base):
    """Агрегированная статистика пользователя, одна строка на пользователя"""

    __tablename__ = "user_statistics"
    __table_args__ = (
        CheckConstraint("solved_tasks >= 0 AND total_task_attempts >= solved_tasks", name="ck_user_statistics_tasks"),
        CheckConstraint("solved_sheets >= 0 AND total_sheet_attempts >= solved_sheets", name="ck_user_statistics_sheets"),
        CheckConstraint("total_time_spent >= 0 AND recent_activity >= 0", name="ck_user_statistics_activity"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    solved_tasks = Column(Integer, default=0, nullable=False)
    total_task_attempts = Column(Integer, default=0, nullable=False)
    solved_sheets = Column(Integer, default=0, nullable=False)
    total_sheet_attempts = Column(Integer, default=0, nullable=False)
    success_rate = Column(Numeric(5, 2), default=0, nullable=False)
    average_score = Column(Numeric(5, 2), default=0, nullable=False)
    total_time_spent = Column(Integer, default=0, nullable=False)
    # {"easy": n, "medium": n, "hard": n}
    tasks_by_difficulty = Column(JSONB, default=default_difficulty_buckets, nullable=False)
    # {"<topic>": {"correct": n, "total": n}}
    tasks_by_topic = Column(JSONB, default=dict, nullable=False)
    tasks_by_type = Column(JSONB, default=dict, nullable=False)
    recent_activity = Column(Integer, default=0, nullable=False)
    last_activity_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    user = relationship("User", backref="statistic", uselist=False)
