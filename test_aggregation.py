import random
from datetime import date, datetime
from decimal import Decimal

import pytest

from src.models import user_statistic as user_statistic_model
from src.models.user_statistic import UserStatistic
from src.services.aggregation import (
    StatisticsSnapshot,
    TaskEvent,
    SheetEvent,
    DayProgress,
    DayContribution,
    SuccessRateMode,
    apply_task_event,
    apply_sheet_event,
    apply_to_day,
    average_time_per_task,
    default_difficulty_buckets,
    round2,
    running_mean,
    sheet_accuracy,
)

NOW = datetime(2026, 10, 18, 12, 0, 0)


def task(is_correct, score, time_spent=0, difficulty=None, topic=None, question_type=None):
    return TaskEvent(
        is_correct=is_correct,
        score=Decimal(str(score)),
        time_spent=time_spent,
        difficulty=difficulty,
        topic=topic,
        question_type=question_type,
    )


class TestHelpers:
    """Округление и вспомогательные формулы"""

    def test_round2_half_up(self):
        assert round2(Decimal("66.665")) == Decimal("66.67")
        assert round2(Decimal("0.005")) == Decimal("0.01")
        assert str(round2(100)) == "100.00"

    def test_running_mean_first_value_is_exact(self):
        assert running_mean(Decimal("0"), 0, Decimal("42.5")) == Decimal("42.50")

    def test_running_mean_folds_value(self):
        assert running_mean(Decimal("100"), 1, Decimal("40")) == Decimal("70.00")

    def test_sheet_accuracy(self):
        assert sheet_accuracy(8, 10) == Decimal("80.00")
        assert sheet_accuracy(2, 3) == Decimal("66.67")

    def test_average_time_per_task(self):
        assert average_time_per_task(600, 10) == Decimal("60.00")
        assert average_time_per_task(100, 3) == Decimal("33.33")


class TestApplyTaskEvent:
    """Применение ответа на задачу к агрегату"""

    def test_first_task_event_for_fresh_user(self):
        result = apply_task_event(
            StatisticsSnapshot(),
            task(True, 100, 30, difficulty="easy", topic="math"),
            now=NOW,
        )

        assert result.solved_tasks == 1
        assert result.total_task_attempts == 1
        assert str(result.success_rate) == "100.00"
        assert str(result.average_score) == "100.00"
        assert result.total_time_spent == 30
        assert result.tasks_by_difficulty == {"easy": 1, "medium": 0, "hard": 0}
        assert result.tasks_by_topic == {"math": {"correct": 1, "total": 1}}
        assert result.tasks_by_type == {}
        assert result.recent_activity == 1
        assert result.last_activity_at == NOW

    def test_second_task_event(self):
        first = apply_task_event(StatisticsSnapshot(), task(True, 100, 30, "easy", "math"), now=NOW)
        second = apply_task_event(first, task(False, 40, 20, "easy", "math"), now=NOW)

        assert second.solved_tasks == 1
        assert second.total_task_attempts == 2
        assert str(second.success_rate) == "50.00"
        assert str(second.average_score) == "70.00"
        assert second.total_time_spent == 50
        assert second.tasks_by_difficulty == {"easy": 2, "medium": 0, "hard": 0}
        assert second.tasks_by_topic == {"math": {"correct": 1, "total": 2}}

    def test_does_not_mutate_previous_snapshot(self):
        prev = apply_task_event(StatisticsSnapshot(), task(True, 100, topic="math", question_type="mcq"), now=NOW)
        apply_task_event(prev, task(True, 90, topic="math", question_type="mcq"), now=NOW)

        assert prev.tasks_by_topic == {"math": {"correct": 1, "total": 1}}
        assert prev.tasks_by_type == {"mcq": {"correct": 1, "total": 1}}
        assert prev.total_task_attempts == 1

    def test_missing_classification_leaves_maps_untouched(self):
        result = apply_task_event(StatisticsSnapshot(), task(True, 80, 10), now=NOW)

        assert result.tasks_by_difficulty == {"easy": 0, "medium": 0, "hard": 0}
        assert result.tasks_by_topic == {}
        assert result.tasks_by_type == {}

    def test_unknown_values_become_new_keys(self):
        result = apply_task_event(
            StatisticsSnapshot(),
            task(False, 0, difficulty="insane", topic="топология", question_type="proof"),
            now=NOW,
        )

        assert result.tasks_by_difficulty["insane"] == 1
        assert result.tasks_by_topic["топология"] == {"correct": 0, "total": 1}
        assert result.tasks_by_type["proof"] == {"correct": 0, "total": 1}

    def test_difficulty_counts_every_attempt(self):
        snapshot = StatisticsSnapshot()
        for is_correct in (True, False, False):
            snapshot = apply_task_event(snapshot, task(is_correct, 50, difficulty="hard"), now=NOW)

        assert snapshot.tasks_by_difficulty["hard"] == 3

    def test_split_mode_ignores_sheet_attempts(self):
        prev = StatisticsSnapshot(
            solved_sheets=1,
            total_sheet_attempts=3,
            average_score=Decimal("50.00"),
        )
        result = apply_task_event(prev, task(True, 90), now=NOW, mode=SuccessRateMode.SPLIT)

        assert str(result.success_rate) == "100.00"
        assert str(result.average_score) == "90.00"

    def test_combined_mode_uses_task_and_sheet_pool(self):
        prev = StatisticsSnapshot(
            solved_sheets=1,
            total_sheet_attempts=3,
            average_score=Decimal("50.00"),
        )
        result = apply_task_event(prev, task(True, 90), now=NOW, mode="combined")

        # (1 + 1) / (1 + 3)
        assert str(result.success_rate) == "50.00"
        # (50 * 3 + 90) / 4
        assert str(result.average_score) == "60.00"

    def test_running_mean_matches_plain_mean(self):
        rng = random.Random(7)
        scores = [rng.randint(0, 100) for _ in range(25)]
        snapshot = StatisticsSnapshot()
        for score in scores:
            snapshot = apply_task_event(snapshot, task(score >= 50, score), now=NOW)

        expected = Decimal(sum(scores)) / len(scores)
        assert abs(snapshot.average_score - expected) <= Decimal("0.07")


class TestApplySheetEvent:
    """Применение результата листа к агрегату"""

    def test_sheet_after_tasks_uses_combined_pool(self):
        snapshot = apply_task_event(StatisticsSnapshot(), task(True, 100, 30, "easy", "math"), now=NOW)
        snapshot = apply_task_event(snapshot, task(False, 40, 20, "easy", "math"), now=NOW)

        result = apply_sheet_event(snapshot, SheetEvent(total_tasks=10, correct_tasks=8, total_time_spent=600), now=NOW)

        assert result.solved_sheets == 1
        assert result.total_sheet_attempts == 1
        # (1 + 1) / (2 + 1)
        assert str(result.success_rate) == "66.67"
        # (70 * 2 + 80) / 3
        assert str(result.average_score) == "73.33"
        assert result.total_time_spent == 650
        assert result.recent_activity == 3
        assert result.solved_tasks == 1
        assert result.total_task_attempts == 2

    def test_first_sheet_for_fresh_user(self):
        result = apply_sheet_event(
            StatisticsSnapshot(), SheetEvent(total_tasks=4, correct_tasks=3, total_time_spent=120), now=NOW
        )

        assert str(result.average_score) == "75.00"
        assert str(result.success_rate) == "100.00"
        assert result.tasks_by_difficulty == {"easy": 0, "medium": 0, "hard": 0}

    @pytest.mark.parametrize("correct,solved", [(7, 1), (6, 0), (10, 1), (0, 0)])
    def test_solved_threshold_is_seventy_percent(self, correct, solved):
        result = apply_sheet_event(
            StatisticsSnapshot(), SheetEvent(total_tasks=10, correct_tasks=correct, total_time_spent=0), now=NOW
        )
        assert result.solved_sheets == solved

    def test_custom_threshold(self):
        result = apply_sheet_event(
            StatisticsSnapshot(),
            SheetEvent(total_tasks=10, correct_tasks=8, total_time_spent=0),
            now=NOW,
            solved_threshold=90,
        )
        assert result.solved_sheets == 0

    def test_sheet_does_not_touch_classification_maps(self):
        prev = apply_task_event(StatisticsSnapshot(), task(True, 100, topic="math"), now=NOW)
        result = apply_sheet_event(prev, SheetEvent(total_tasks=2, correct_tasks=2, total_time_spent=5), now=NOW)

        assert result.tasks_by_topic == prev.tasks_by_topic
        assert result.tasks_by_difficulty == prev.tasks_by_difficulty


class TestInvariants:
    """Свойства, которые должны выполняться для любой последовательности событий"""

    def _random_events(self, seed, count=200):
        rng = random.Random(seed)
        topics = ["math", "physics", None]
        for _ in range(count):
            if rng.random() < 0.25:
                total = rng.randint(1, 20)
                yield SheetEvent(total_tasks=total, correct_tasks=rng.randint(0, total), total_time_spent=rng.randint(0, 900))
            else:
                yield task(
                    rng.random() < 0.6,
                    rng.randint(0, 100),
                    rng.randint(0, 300),
                    difficulty=rng.choice(["easy", "medium", "hard", None]),
                    topic=rng.choice(topics),
                    question_type=rng.choice(["mcq", "open", None]),
                )

    @pytest.mark.parametrize("seed", [1, 2, 3])
    def test_monotonic_counters_and_bucket_consistency(self, seed):
        snapshot = StatisticsSnapshot()
        for event in self._random_events(seed):
            if isinstance(event, SheetEvent):
                nxt = apply_sheet_event(snapshot, event, now=NOW)
            else:
                nxt = apply_task_event(snapshot, event, now=NOW)

            assert nxt.total_task_attempts >= snapshot.total_task_attempts
            assert nxt.total_sheet_attempts >= snapshot.total_sheet_attempts
            assert nxt.total_time_spent >= snapshot.total_time_spent
            assert nxt.recent_activity == snapshot.recent_activity + 1
            assert nxt.total_task_attempts >= nxt.solved_tasks >= 0
            assert nxt.total_sheet_attempts >= nxt.solved_sheets >= 0
            assert Decimal(0) <= nxt.success_rate <= Decimal(100)
            for buckets in (nxt.tasks_by_topic, nxt.tasks_by_type):
                for counts in buckets.values():
                    assert 0 <= counts["correct"] <= counts["total"]
            snapshot = nxt


class TestSnapshotMapping:
    def test_column_default_matches_engine_default(self):
        column_default = UserStatistic.__table__.c.tasks_by_difficulty.default

        assert user_statistic_model.default_difficulty_buckets is default_difficulty_buckets
        assert column_default.is_callable
        assert StatisticsSnapshot().tasks_by_difficulty == default_difficulty_buckets()

    def test_from_model_copies_maps(self):
        stat = UserStatistic(
            user_id=1,
            solved_tasks=1,
            total_task_attempts=2,
            solved_sheets=0,
            total_sheet_attempts=0,
            success_rate=Decimal("50.00"),
            average_score=Decimal("70.00"),
            total_time_spent=50,
            tasks_by_difficulty={"easy": 2, "medium": 0, "hard": 0},
            tasks_by_topic={"math": {"correct": 1, "total": 2}},
            tasks_by_type={},
            recent_activity=2,
            last_activity_at=None,
        )
        snapshot = StatisticsSnapshot.from_model(stat)
        result = apply_task_event(snapshot, task(True, 100, topic="math"), now=NOW)

        assert result.tasks_by_topic["math"] == {"correct": 2, "total": 3}
        assert stat.tasks_by_topic["math"] == {"correct": 1, "total": 2}

    def test_as_values_has_every_column(self):
        values = StatisticsSnapshot().as_values()
        assert values["success_rate"] == Decimal(0)
        assert values["tasks_by_difficulty"] == {"easy": 0, "medium": 0, "hard": 0}
        assert values["last_activity_at"] is None


class TestApplyToDay:
    """Накопление дневной статистики"""

    DAY = date(2026, 10, 18)

    def test_new_day_seeded_from_task(self):
        result = apply_to_day(None, DayContribution.for_task(task(True, 100, 30)), self.DAY)

        assert result.day == self.DAY
        assert result.tasks_completed == 1
        assert result.sheets_completed == 0
        assert result.time_spent == 30
        assert str(result.accuracy) == "100.00"

    def test_new_day_seeded_from_incorrect_task(self):
        result = apply_to_day(None, DayContribution.for_task(task(False, 10, 5)), self.DAY)
        assert str(result.accuracy) == "0.00"
        assert result.tasks_completed == 1

    def test_new_day_seeded_from_sheet(self):
        sheet = SheetEvent(total_tasks=10, correct_tasks=8, total_time_spent=600)
        result = apply_to_day(None, DayContribution.for_sheet(sheet), self.DAY)

        assert result.sheets_completed == 1
        assert result.tasks_completed == 0
        assert result.time_spent == 600
        assert str(result.accuracy) == "80.00"

    def test_blends_tasks_and_sheets(self):
        day = apply_to_day(None, DayContribution.for_task(task(True, 100, 10)), self.DAY)
        day = apply_to_day(day, DayContribution.for_task(task(False, 0, 10)), self.DAY)
        day = apply_to_day(
            day, DayContribution.for_sheet(SheetEvent(total_tasks=10, correct_tasks=8, total_time_spent=100)), self.DAY
        )

        assert day.tasks_completed == 2
        assert day.sheets_completed == 1
        assert day.time_spent == 120
        # (100 + 0 + 80) / 3
        assert str(day.accuracy) == "60.00"

    def test_no_drift_over_many_events(self):
        day = None
        correct = 0
        for i in range(1, 301):
            is_correct = i % 3 == 0
            correct += is_correct
            day = apply_to_day(day, DayContribution.for_task(task(is_correct, 0)), self.DAY)

        assert day.total_attempts == 300
        assert day.accuracy == round2(Decimal(correct) / 300 * 100)
        assert Decimal(0) <= day.accuracy <= Decimal(100)

    def test_from_existing_row(self):
        prev = DayProgress(
            day=self.DAY,
            tasks_completed=1,
            sheets_completed=0,
            time_spent=10,
            total_attempts=1,
            accuracy_points=Decimal("100"),
            accuracy=Decimal("100"),
        )
        result = apply_to_day(prev, DayContribution.for_task(task(False, 0, 5)), self.DAY)

        assert str(result.accuracy) == "50.00"
        assert result.time_spent == 15
        assert result.as_values()["total_attempts"] == 2
