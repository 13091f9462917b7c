from sqlalchemy import Column, Integer, Date, ForeignKey, Numeric, CheckConstraint, UniqueConstraint

from src.db.base import Base


class UserProgress(Base):
    """Активность пользователя за один календарный день"""

    __tablename__ = "user_progress"
    __table_args__ = (
        UniqueConstraint("user_id", "date", name="uq_user_progress_user_date"),
        CheckConstraint("accuracy >= 0 AND accuracy <= 100", name="ck_user_progress_accuracy"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(Date, nullable=False)
    tasks_completed = Column(Integer, nullable=False, default=0)
    sheets_completed = Column(Integer, nullable=False, default=0)
    time_spent = Column(Integer, nullable=False, default=0)
    accuracy = Column(Numeric(5, 2), nullable=False, default=0)
    # Точность хранится как сумма процентов по попыткам, чтобы не восстанавливать
    # число верных ответов из округленного среднего
    total_attempts = Column(Integer, nullable=False, default=0)
    accuracy_points = Column(Numeric(12, 2), nullable=False, default=0)
