"""
Tests for scheduler wiring: triggers, job options, manual runs.
"""
from datetime import datetime
from zoneinfo import ZoneInfo

import pytest
from apscheduler.schedulers.background import BackgroundScheduler

import run_job as run_job_cli
from app.application import scheduler as scheduler_module
from app.application.scheduler import JOBS, build_triggers, register_jobs, run_job
from app.config import Settings

MADRID = ZoneInfo("Europe/Madrid")


@pytest.fixture
def settings():
    return Settings(_env_file=None)


def _fields(trigger) -> dict[str, str]:
    return {f.name: str(f) for f in trigger.fields}


def test_every_job_has_a_trigger(settings):
    assert set(build_triggers(settings)) == set(JOBS)


def test_trigger_expressions(settings):
    triggers = build_triggers(settings)

    assert _fields(triggers["recurring_expenses"])["hour"] == "0"
    assert _fields(triggers["recurring_expenses"])["minute"] == "1"
    assert _fields(triggers["recurring_recovery"])["hour"] == "*/6"
    assert _fields(triggers["daily_reminders"])["hour"] == "20"
    assert _fields(triggers["weekly_reminders"])["minute"] == "*/5"
    assert _fields(triggers["weekly_reminders"])["hour"] == "8-22"
    assert _fields(triggers["income_reminders"])["hour"] == "20"


def test_triggers_use_service_time_zone(settings):
    for trigger in build_triggers(settings).values():
        assert str(trigger.timezone) == "Europe/Madrid"


def test_next_fire_times(settings):
    triggers = build_triggers(settings)
    now = datetime(2026, 4, 20, 10, 7, tzinfo=MADRID)

    assert triggers["recurring_expenses"].get_next_fire_time(None, now) == datetime(2026, 4, 21, 0, 1, tzinfo=MADRID)
    assert triggers["recurring_recovery"].get_next_fire_time(None, now) == datetime(2026, 4, 20, 12, 0, tzinfo=MADRID)
    assert triggers["daily_reminders"].get_next_fire_time(None, now) == datetime(2026, 4, 20, 20, 0, tzinfo=MADRID)
    assert triggers["weekly_reminders"].get_next_fire_time(None, now) == datetime(2026, 4, 20, 10, 10, tzinfo=MADRID)


def test_weekly_idle_outside_active_hours(settings):
    trigger = build_triggers(settings)["weekly_reminders"]
    late = datetime(2026, 4, 20, 22, 58, tzinfo=MADRID)

    assert trigger.get_next_fire_time(None, late) == datetime(2026, 4, 21, 8, 0, tzinfo=MADRID)


def test_configurable_hours():
    settings = Settings(_env_file=None, DAILY_REMINDER_HOUR=9, RECOVERY_INTERVAL_HOURS=3)
    triggers = build_triggers(settings)

    assert _fields(triggers["daily_reminders"])["hour"] == "9"
    assert _fields(triggers["recurring_recovery"])["hour"] == "*/3"


def test_register_jobs_prevents_overlapping_runs(settings):
    target = BackgroundScheduler()
    register_jobs(target, settings)

    jobs = {job.id: job for job in target.get_jobs()}
    assert set(jobs) == set(JOBS)
    for job in jobs.values():
        assert job.max_instances == 1
        assert job.coalesce is True
        assert job.misfire_grace_time == settings.JOB_TIMEOUT_SECONDS


def test_register_jobs_twice_replaces(settings):
    target = BackgroundScheduler()
    register_jobs(target, settings)
    register_jobs(target, settings)

    assert len(target.get_jobs()) == len(JOBS)


def test_run_job_unknown():
    with pytest.raises(KeyError):
        run_job("cleanup")


def test_run_job_dispatches(monkeypatch):
    monkeypatch.setitem(scheduler_module.JOBS, "daily_reminders", lambda: "ran")

    assert run_job("daily_reminders") == "ran"


class TestRunJobCli:
    def test_usage_on_unknown_job(self, capsys):
        assert run_job_cli.main(["run_job.py", "cleanup"]) == 2
        assert "usage" in capsys.readouterr().err

    def test_usage_without_argument(self):
        assert run_job_cli.main(["run_job.py"]) == 2

    def test_runs_job(self, monkeypatch):
        calls = []
        monkeypatch.setitem(scheduler_module.JOBS, "income_reminders", lambda: calls.append(1))

        assert run_job_cli.main(["run_job.py", "income_reminders"]) == 0
        assert calls == [1]
