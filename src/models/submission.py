import uuid
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text, Boolean, Numeric
from sqlalchemy.dialects.postgresql import UUID

from src.db.base import Base


class TaskSubmission(Base):
    """Ответ на отдельную задачу. Только вставка, никогда не изменяется"""

    __tablename__ = "task_submissions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    task_id = Column(UUID(as_uuid=True), nullable=True, index=True)
    sheet_id = Column(UUID(as_uuid=True), nullable=True)
    is_correct = Column(Boolean, nullable=False)
    score = Column(Numeric(5, 2), nullable=False)
    time_spent = Column(Integer, nullable=False, default=0)  # секунды
    user_answer = Column(Text, nullable=True)
    user_solution = Column(Text, nullable=True)
    difficulty = Column(String(20), nullable=True)
    topic = Column(String(255), nullable=True)
    question_type = Column(String(50), nullable=True)
    submitted_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class SheetSubmission(Base):
    """Результат прохождения листа задач целиком"""

    __tablename__ = "sheet_submissions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    sheet_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    total_tasks = Column(Integer, nullable=False)
    correct_tasks = Column(Integer, nullable=False)
    accuracy = Column(Numeric(5, 2), nullable=False)
    total_time_spent = Column(Integer, nullable=False, default=0)
    average_time_per_task = Column(Numeric(10, 2), nullable=False)
    submitted_at = Column(DateTime, default=datetime.utcnow, nullable=False)
