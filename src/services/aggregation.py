"""
Pure statistics transitions.

Every function here takes the previous aggregate (or day bucket) and one
event and returns the next value; nothing touches the database. The
services in this package load rows, call these functions and write the
result back inside a single transaction.

Numbers that are persisted as NUMERIC(5, 2) (rates, means, accuracies) are
carried as ``Decimal`` and rounded half-up to two places after every step.
"""
import copy
import enum
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Optional

TWO_PLACES = Decimal("0.01")
HUNDRED = Decimal(100)
ZERO = Decimal(0)

DEFAULT_SHEET_SOLVED_THRESHOLD = Decimal(70)
DIFFICULTY_LEVELS = ("easy", "medium", "hard")


def round2(value) -> Decimal:
    """Round half-up to two decimal places"""
    return Decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def percentage(part, whole) -> Decimal:
    if not whole:
        return round2(ZERO)
    return round2(Decimal(part) / Decimal(whole) * HUNDRED)


def running_mean(previous_mean, previous_count: int, value) -> Decimal:
    """Fold one value into a mean over ``previous_count`` samples"""
    if previous_count == 0:
        return round2(value)
    total = Decimal(previous_mean) * previous_count + Decimal(value)
    return round2(total / (previous_count + 1))


def sheet_accuracy(correct_tasks: int, total_tasks: int) -> Decimal:
    return percentage(correct_tasks, total_tasks)


def average_time_per_task(total_time_spent: int, total_tasks: int) -> Decimal:
    return round2(Decimal(total_time_spent) / Decimal(total_tasks))


class SuccessRateMode(str, enum.Enum):
    """How a task submission computes success rate and average score.

    SPLIT counts task attempts only; COMBINED uses the same task+sheet pool
    that sheet submissions always use.
    """
    SPLIT = "split"
    COMBINED = "combined"


def default_difficulty_buckets() -> Dict[str, int]:
    return {level: 0 for level in DIFFICULTY_LEVELS}


@dataclass
class StatisticsSnapshot:
    """Value copy of a ``UserStatistic`` row"""
    solved_tasks: int = 0
    total_task_attempts: int = 0
    solved_sheets: int = 0
    total_sheet_attempts: int = 0
    success_rate: Decimal = ZERO
    average_score: Decimal = ZERO
    total_time_spent: int = 0
    tasks_by_difficulty: Dict[str, int] = field(default_factory=default_difficulty_buckets)
    tasks_by_topic: Dict[str, Dict[str, int]] = field(default_factory=dict)
    tasks_by_type: Dict[str, Dict[str, int]] = field(default_factory=dict)
    recent_activity: int = 0
    last_activity_at: Optional[datetime] = None

    @property
    def total_attempts(self) -> int:
        return self.total_task_attempts + self.total_sheet_attempts

    @property
    def total_solved(self) -> int:
        return self.solved_tasks + self.solved_sheets

    @classmethod
    def from_model(cls, stat) -> "StatisticsSnapshot":
        return cls(
            solved_tasks=stat.solved_tasks,
            total_task_attempts=stat.total_task_attempts,
            solved_sheets=stat.solved_sheets,
            total_sheet_attempts=stat.total_sheet_attempts,
            success_rate=Decimal(stat.success_rate),
            average_score=Decimal(stat.average_score),
            total_time_spent=stat.total_time_spent,
            tasks_by_difficulty=copy.deepcopy(stat.tasks_by_difficulty or default_difficulty_buckets()),
            tasks_by_topic=copy.deepcopy(stat.tasks_by_topic or {}),
            tasks_by_type=copy.deepcopy(stat.tasks_by_type or {}),
            recent_activity=stat.recent_activity,
            last_activity_at=stat.last_activity_at,
        )

    def as_values(self) -> dict:
        """Column values for INSERT/UPDATE of ``user_statistics``"""
        return {
            "solved_tasks": self.solved_tasks,
            "total_task_attempts": self.total_task_attempts,
            "solved_sheets": self.solved_sheets,
            "total_sheet_attempts": self.total_sheet_attempts,
            "success_rate": self.success_rate,
            "average_score": self.average_score,
            "total_time_spent": self.total_time_spent,
            "tasks_by_difficulty": self.tasks_by_difficulty,
            "tasks_by_topic": self.tasks_by_topic,
            "tasks_by_type": self.tasks_by_type,
            "recent_activity": self.recent_activity,
            "last_activity_at": self.last_activity_at,
        }


@dataclass(frozen=True)
class TaskEvent:
    is_correct: bool
    score: Decimal
    time_spent: int
    difficulty: Optional[str] = None
    topic: Optional[str] = None
    question_type: Optional[str] = None


@dataclass(frozen=True)
class SheetEvent:
    total_tasks: int
    correct_tasks: int
    total_time_spent: int

    @property
    def accuracy(self) -> Decimal:
        return sheet_accuracy(self.correct_tasks, self.total_tasks)


def _bump_bucket(buckets: Dict[str, Dict[str, int]], key: str, is_correct: bool) -> None:
    bucket = buckets.setdefault(key, {"correct": 0, "total": 0})
    bucket["total"] = bucket.get("total", 0) + 1
    if is_correct:
        bucket["correct"] = bucket.get("correct", 0) + 1


def apply_task_event(
    prev: StatisticsSnapshot,
    event: TaskEvent,
    now: Optional[datetime] = None,
    mode: SuccessRateMode = SuccessRateMode.SPLIT,
) -> StatisticsSnapshot:
    """
    Next aggregate after one task attempt.

    Classification fields that are ``None`` leave their map untouched;
    unseen difficulty/topic/type values become new keys.
    """
    solved_tasks = prev.solved_tasks + (1 if event.is_correct else 0)
    total_task_attempts = prev.total_task_attempts + 1

    if SuccessRateMode(mode) is SuccessRateMode.COMBINED:
        success_rate = percentage(
            solved_tasks + prev.solved_sheets,
            total_task_attempts + prev.total_sheet_attempts,
        )
        average_score = running_mean(prev.average_score, prev.total_attempts, event.score)
    else:
        success_rate = percentage(solved_tasks, total_task_attempts)
        average_score = running_mean(prev.average_score, prev.total_task_attempts, event.score)

    tasks_by_difficulty = dict(prev.tasks_by_difficulty)
    if event.difficulty:
        tasks_by_difficulty[event.difficulty] = tasks_by_difficulty.get(event.difficulty, 0) + 1

    tasks_by_topic = copy.deepcopy(prev.tasks_by_topic)
    if event.topic:
        _bump_bucket(tasks_by_topic, event.topic, event.is_correct)

    tasks_by_type = copy.deepcopy(prev.tasks_by_type)
    if event.question_type:
        _bump_bucket(tasks_by_type, event.question_type, event.is_correct)

    return replace(
        prev,
        solved_tasks=solved_tasks,
        total_task_attempts=total_task_attempts,
        success_rate=success_rate,
        average_score=average_score,
        total_time_spent=prev.total_time_spent + event.time_spent,
        tasks_by_difficulty=tasks_by_difficulty,
        tasks_by_topic=tasks_by_topic,
        tasks_by_type=tasks_by_type,
        recent_activity=prev.recent_activity + 1,
        last_activity_at=now or datetime.utcnow(),
    )


def apply_sheet_event(
    prev: StatisticsSnapshot,
    event: SheetEvent,
    now: Optional[datetime] = None,
    solved_threshold=DEFAULT_SHEET_SOLVED_THRESHOLD,
) -> StatisticsSnapshot:
    """
    Next aggregate after one sheet attempt.

    A sheet counts as solved when its accuracy reaches ``solved_threshold``
    percent. Success rate and average score are computed over the combined
    task+sheet pool; the classification maps are not touched.
    """
    accuracy = event.accuracy
    solved = accuracy >= Decimal(solved_threshold)
    solved_sheets = prev.solved_sheets + (1 if solved else 0)
    total_sheet_attempts = prev.total_sheet_attempts + 1

    return replace(
        prev,
        solved_sheets=solved_sheets,
        total_sheet_attempts=total_sheet_attempts,
        success_rate=percentage(
            prev.solved_tasks + solved_sheets,
            prev.total_task_attempts + total_sheet_attempts,
        ),
        average_score=running_mean(prev.average_score, prev.total_attempts, accuracy),
        total_time_spent=prev.total_time_spent + event.total_time_spent,
        tasks_by_difficulty=dict(prev.tasks_by_difficulty),
        tasks_by_topic=copy.deepcopy(prev.tasks_by_topic),
        tasks_by_type=copy.deepcopy(prev.tasks_by_type),
        recent_activity=prev.recent_activity + 1,
        last_activity_at=now or datetime.utcnow(),
    )


@dataclass
class DayProgress:
    """Value copy of a ``UserProgress`` row"""
    day: date
    tasks_completed: int = 0
    sheets_completed: int = 0
    time_spent: int = 0
    total_attempts: int = 0
    accuracy_points: Decimal = ZERO
    accuracy: Decimal = ZERO

    @classmethod
    def from_model(cls, progress) -> "DayProgress":
        return cls(
            day=progress.date,
            tasks_completed=progress.tasks_completed,
            sheets_completed=progress.sheets_completed,
            time_spent=progress.time_spent,
            total_attempts=progress.total_attempts,
            accuracy_points=Decimal(progress.accuracy_points),
            accuracy=Decimal(progress.accuracy),
        )

    def as_values(self) -> dict:
        return {
            "tasks_completed": self.tasks_completed,
            "sheets_completed": self.sheets_completed,
            "time_spent": self.time_spent,
            "total_attempts": self.total_attempts,
            "accuracy_points": self.accuracy_points,
            "accuracy": self.accuracy,
        }


@dataclass(frozen=True)
class DayContribution:
    """What one event adds to its day bucket"""
    tasks: int
    sheets: int
    time_spent: int
    accuracy: Decimal

    @classmethod
    def for_task(cls, event: TaskEvent) -> "DayContribution":
        return cls(
            tasks=1,
            sheets=0,
            time_spent=event.time_spent,
            accuracy=HUNDRED if event.is_correct else ZERO,
        )

    @classmethod
    def for_sheet(cls, event: SheetEvent) -> "DayContribution":
        return cls(tasks=0, sheets=1, time_spent=event.total_time_spent, accuracy=event.accuracy)


def apply_to_day(prev_day: Optional[DayProgress], contribution: DayContribution, day: date) -> DayProgress:
    """
    Next day bucket after one event.

    Accuracy is the mean of per-attempt accuracies for the day, derived from
    the stored attempt count and point sum rather than from the previous
    rounded accuracy.
    """
    base = prev_day if prev_day is not None else DayProgress(day=day)
    total_attempts = base.total_attempts + 1
    accuracy_points = Decimal(base.accuracy_points) + contribution.accuracy

    return DayProgress(
        day=base.day,
        tasks_completed=base.tasks_completed + contribution.tasks,
        sheets_completed=base.sheets_completed + contribution.sheets,
        time_spent=base.time_spent + contribution.time_spent,
        total_attempts=total_attempts,
        accuracy_points=round2(accuracy_points),
        accuracy=round2(accuracy_points / total_attempts),
    )
