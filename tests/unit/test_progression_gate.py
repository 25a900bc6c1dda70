"""Unit tests for sequential daily-test unlocks."""
from datetime import timedelta

import pytest

from assessment.errors import DayLocked
from assessment.models import AttemptStatus, TestKind
from assessment.services.progression_gate import ProgressionGate


@pytest.fixture
def days(factory, course):
    return [
        factory.definition(course, TestKind.DAILY_TEST, day_number=n, question_count=5, time_limit_minutes=15)
        for n in (1, 2, 3)
    ]


@pytest.fixture
def gate(db_session):
    return ProgressionGate(db_session, unlock_percentage=90.0)


@pytest.mark.unit
class TestNextAvailableDay:
    def test_day_one_without_attempts(self, gate, learner, course, days):
        assert gate.next_available_day(learner.id, course.id) == 1

    def test_day_two_after_passing_day_one(self, gate, factory, learner, enrollment, course, days):
        factory.attempt(learner, enrollment, days[0], percentage=95.0)
        assert gate.next_available_day(learner.id, course.id) == 2

    def test_low_score_keeps_day_one(self, gate, factory, learner, enrollment, course, days):
        factory.attempt(learner, enrollment, days[0], percentage=60.0)
        factory.attempt(learner, enrollment, days[1], percentage=100.0)
        assert gate.next_available_day(learner.id, course.id) == 1

    def test_threshold_is_inclusive(self, gate, factory, learner, enrollment, course, days):
        factory.attempt(learner, enrollment, days[0], percentage=90.0)
        assert gate.next_available_day(learner.id, course.id) == 2

    def test_best_attempt_counts(self, gate, factory, learner, enrollment, course, days):
        factory.attempt(learner, enrollment, days[0], percentage=50.0)
        factory.attempt(learner, enrollment, days[0], percentage=92.5)
        factory.attempt(learner, enrollment, days[0], percentage=70.0)
        assert gate.next_available_day(learner.id, course.id) == 2

    def test_auto_submitted_attempt_counts(self, gate, factory, learner, enrollment, course, days):
        factory.attempt(learner, enrollment, days[0], percentage=100.0, status=AttemptStatus.SUBMITTED)
        assert gate.next_available_day(learner.id, course.id) == 2

    def test_abandoned_attempt_does_not_count(self, gate, factory, learner, enrollment, course, days):
        factory.attempt(learner, enrollment, days[0], percentage=100.0, status=AttemptStatus.ABANDONED)
        assert gate.next_available_day(learner.id, course.id) == 1

    def test_scan_stops_past_last_day(self, gate, factory, learner, enrollment, course, days):
        for d in days:
            factory.attempt(learner, enrollment, d, percentage=100.0)
        assert gate.next_available_day(learner.id, course.id) == 4

    def test_other_learner_attempts_ignored(self, gate, factory, learner, enrollment, course, days):
        other = factory.user()
        other_enrollment = factory.enroll(other, course)
        factory.attempt(other, other_enrollment, days[0], percentage=100.0)
        assert gate.next_available_day(learner.id, course.id) == 1


@pytest.mark.unit
class TestEnsureUnlocked:
    def test_open_day_passes(self, gate, factory, learner, enrollment, course, days):
        factory.attempt(learner, enrollment, days[0], percentage=95.0)
        gate.ensure_unlocked(learner.id, course.id, 2)

    def test_locked_day_carries_details(self, gate, learner, course, days):
        with pytest.raises(DayLocked) as exc:
            gate.ensure_unlocked(learner.id, course.id, 3)
        assert exc.value.details == {
            "requested_day": 3,
            "next_available_day": 1,
            "required_day": 2,
            "required_percentage": 90.0,
        }
        assert "Day 2" in exc.value.message


@pytest.mark.unit
class TestDailyOverview:
    def test_statuses(self, gate, factory, learner, enrollment, course, days):
        factory.attempt(learner, enrollment, days[0], percentage=95.0)
        factory.attempt(learner, enrollment, days[1], percentage=40.0)

        overview = gate.daily_test_overview(learner.id, course.id)
        assert [d.status for d in overview] == ["passed", "failed", "locked"]
        assert overview[0].best_score == 95.0
        assert overview[1].attempts == 1
        assert overview[2].last_attempt_at is None

    def test_unlocked_and_in_progress(self, gate, factory, learner, enrollment, course, days):
        factory.attempt(learner, enrollment, days[0], percentage=0.0, status=AttemptStatus.IN_PROGRESS)
        overview = gate.daily_test_overview(learner.id, course.id)
        assert [d.status for d in overview] == ["in_progress", "locked", "locked"]

    def test_stats(self, gate, factory, clock, learner, enrollment, course, days):
        factory.attempt(learner, enrollment, days[0], percentage=100.0, minutes=12)
        factory.attempt(learner, enrollment, days[1], percentage=90.0, started_at=clock() + timedelta(days=1), minutes=8)
        factory.attempt(learner, enrollment, days[2], percentage=50.0, started_at=clock() + timedelta(days=2), minutes=10)

        stats = gate.daily_test_stats(learner.id, course.id)
        assert stats.total_tests == 3
        assert stats.completed_tests == 3
        assert stats.passed_tests == 2
        assert stats.failed_tests == 1
        assert stats.average_score == 80.0
        assert stats.current_streak == 2
        assert stats.longest_streak == 2
        assert stats.total_time_minutes == 30


@pytest.mark.unit
class TestWeeklyStats:
    @pytest.fixture
    def nine_days(self, factory, course):
        return [factory.definition(course, TestKind.DAILY_TEST, day_number=n, question_count=5) for n in range(1, 10)]

    def test_groups_days_into_weeks(self, gate, factory, learner, enrollment, course, nine_days):
        for day, pct in zip(nine_days[:4], (100.0, 95.0, 92.0, 50.0)):
            factory.attempt(learner, enrollment, day, percentage=pct)
        factory.attempt(learner, enrollment, nine_days[7], percentage=100.0)

        week1, week2 = gate.weekly_stats(learner.id, course.id)
        assert (week1.week_number, week1.tests_available, week1.tests_completed, week1.tests_passed) == (1, 7, 4, 3)
        assert week1.average_score == 84.25
        assert week1.longest_streak == 3
        assert (week2.week_number, week2.tests_available, week2.tests_completed, week2.tests_passed) == (2, 2, 1, 1)
        assert week2.average_score == 100.0

    def test_fixed_number_of_weeks(self, gate, learner, course, nine_days):
        weeks = gate.weekly_stats(learner.id, course.id, weeks=3)
        assert [w.tests_available for w in weeks] == [7, 2, 0]
        assert all(w.tests_completed == 0 and w.average_score == 0.0 for w in weeks)

    def test_no_daily_tests(self, gate, learner, course):
        assert gate.weekly_stats(learner.id, course.id) == []
