"""
Tests for the reminder scan
"""
from datetime import datetime, timedelta

import pytest
from sqlalchemy.exc import OperationalError

from app.models import Priority, Task
from app.services import scheduler
from app.services.reminders import (
    find_12h_candidates,
    find_24h_candidates,
    hours_until_due,
    run_reminder_scan,
)

NOW = datetime(2026, 10, 19, 12, 0, 0)


@pytest.fixture()
def owner(make_user):
    return make_user()


@pytest.fixture()
def make_task(db_session, owner):
    def _make_task(due_in=None, **fields):
        fields.setdefault("title", "Write report")
        if due_in is not None:
            fields["due_date"] = NOW + due_in
        task = Task(user_id=owner.id, **fields)
        db_session.add(task)
        db_session.commit()
        db_session.refresh(task)
        return task

    return _make_task


def test_task_due_in_24h_gets_one_reminder(db_session, mailer, make_task, owner):
    task = make_task(due_in=timedelta(hours=24), priority=Priority.HIGH)

    result = run_reminder_scan(db_session, mailer, now=NOW)

    assert result.sent == 1
    assert mailer.sent[0]["to"] == owner.email
    assert mailer.sent[0]["subject"] == 'REMINDER: Task "Write report" due in 24 hours!'
    db_session.refresh(task)
    assert task.reminder_sent is True
    assert task.last_reminder_sent == NOW

    # Running again straight away does not resend the 24h tier
    again = run_reminder_scan(db_session, mailer, now=NOW + timedelta(minutes=1))
    assert again.sent == 0
    assert len(mailer.sent) == 1


@pytest.mark.parametrize("age", [timedelta(hours=23, minutes=10), timedelta(hours=23, minutes=50)])
def test_stale_24h_reminder_is_rearmed(db_session, mailer, make_task, age):
    task = make_task(
        due_in=timedelta(hours=24),
        reminder_sent=True,
        last_reminder_sent=NOW - age,
    )

    assert [t.id for t, _ in find_24h_candidates(db_session, NOW)] == [task.id]
    assert run_reminder_scan(db_session, mailer, now=NOW).sent == 1


def test_recent_24h_reminder_is_not_rearmed(db_session, mailer, make_task):
    make_task(
        due_in=timedelta(hours=24),
        reminder_sent=True,
        last_reminder_sent=NOW - timedelta(hours=22, minutes=50),
    )

    assert find_24h_candidates(db_session, NOW) == []
    assert run_reminder_scan(db_session, mailer, now=NOW).sent == 0


def test_task_due_in_13h_without_prior_reminder_is_not_sent(db_session, mailer, make_task):
    make_task(due_in=timedelta(hours=13))

    # In the 24h window but outside the 22-26h band; never reminded, so no 12h match
    assert len(find_24h_candidates(db_session, NOW)) == 1
    assert find_12h_candidates(db_session, NOW) == []
    assert run_reminder_scan(db_session, mailer, now=NOW).sent == 0
    assert mailer.sent == []


def test_12h_tier_follows_earlier_24h_reminder(db_session, mailer, make_task):
    task = make_task(
        due_in=timedelta(hours=12),
        reminder_sent=True,
        last_reminder_sent=NOW - timedelta(hours=12),
    )

    result = run_reminder_scan(db_session, mailer, now=NOW)

    assert result.sent == 1
    assert mailer.sent[0]["subject"].startswith("URGENT:")
    assert "due in 12 hours" in mailer.sent[0]["subject"]
    db_session.refresh(task)
    assert task.reminder_sent is True
    assert task.last_reminder_sent == NOW


def test_12h_tier_waits_eleven_hours_after_last_reminder(db_session, mailer, make_task):
    make_task(
        due_in=timedelta(hours=12),
        reminder_sent=True,
        last_reminder_sent=NOW - timedelta(hours=5),
    )

    assert run_reminder_scan(db_session, mailer, now=NOW).sent == 0


def test_completed_tasks_are_skipped(db_session, mailer, make_task):
    make_task(due_in=timedelta(hours=24), completed=True, completed_at=NOW)

    assert run_reminder_scan(db_session, mailer, now=NOW).sent == 0


def test_task_outside_band_inside_window_is_skipped(db_session, mailer, make_task):
    make_task(due_in=timedelta(hours=20))
    make_task(due_in=timedelta(hours=30))
    make_task()

    assert run_reminder_scan(db_session, mailer, now=NOW).sent == 0


def test_failed_send_leaves_flags_for_next_run(db_session, mailer, make_task):
    task = make_task(due_in=timedelta(hours=23))
    mailer.fail = True

    result = run_reminder_scan(db_session, mailer, now=NOW)

    assert result.sent == 0
    assert result.failed == 1
    db_session.refresh(task)
    assert task.reminder_sent is False
    assert task.last_reminder_sent is None

    mailer.fail = False
    later = NOW + timedelta(minutes=30)
    assert run_reminder_scan(db_session, mailer, now=later).sent == 1
    db_session.refresh(task)
    assert task.reminder_sent is True
    assert task.last_reminder_sent == later


def test_reminders_go_to_each_owner(db_session, mailer, make_user):
    grace = make_user(name="Grace", email="grace@example.com")
    db_session.add(Task(title="Ship it", user_id=grace.id, due_date=NOW + timedelta(hours=23)))
    db_session.commit()

    run_reminder_scan(db_session, mailer, now=NOW)

    assert [m["to"] for m in mailer.sent] == ["grace@example.com"]
    assert "Hi Grace" in mailer.sent[0]["html"]
    assert "No description provided" in mailer.sent[0]["html"]


@pytest.mark.parametrize(
    "delta, expected",
    [
        (timedelta(hours=24), 24),
        (timedelta(hours=21, minutes=30), 22),
        (timedelta(hours=26, minutes=29), 26),
        (timedelta(hours=-3), -3),
    ],
)
def test_hours_until_due_rounds_half_up(delta, expected):
    assert hours_until_due(Task(title="t", user_id="u", due_date=NOW + delta), NOW) == expected


def test_hours_until_due_without_due_date():
    assert hours_until_due(Task(title="t", user_id="u"), NOW) is None


def test_scheduled_run_survives_store_failure(monkeypatch, mailer):
    class BrokenSession:
        def query(self, *args):
            raise OperationalError("SELECT", {}, Exception("database is locked"))

        def rollback(self):
            self.rolled_back = True

        def close(self):
            pass

    monkeypatch.setattr("app.database.SessionLocal", BrokenSession)
    monkeypatch.setattr(scheduler, "get_mailer", lambda: mailer)

    assert scheduler.check_task_reminders() is None
    assert mailer.sent == []


def test_scheduler_start_and_stop():
    scheduler.start_reminder_scheduler()
    try:
        assert scheduler.is_scheduler_running()
        # A second start is ignored
        scheduler.start_reminder_scheduler()
    finally:
        scheduler.stop_reminder_scheduler()
    assert not scheduler.is_scheduler_running()
