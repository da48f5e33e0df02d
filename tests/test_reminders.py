from datetime import datetime

from routine_api.reminders import build_reminders

NOW = datetime(2024, 3, 15, 10, 0)


def test_future_start_times_only(make_routine):
    routines = [
        make_routine(name="Gym", time_range={"start": "07:00", "end": "08:30"}),
        make_routine(name="Run", time_range={"start": "18:00"}),
        make_routine(name="Steps"),
        make_routine(name="Paused", time_range={"start": "19:00"}, paused=True),
    ]
    reminders = build_reminders(routines, NOW, total_due=0, completed=0)
    assert [r.body for r in reminders] == ["Time for: Run"]
    assert reminders[0].fire_at == datetime(2024, 3, 15, 18, 0)


def test_streak_at_risk_reminder():
    reminders = build_reminders([], NOW, total_due=3, completed=2)
    assert len(reminders) == 1
    assert reminders[0].body == "You still have 1 routine to complete today!"
    assert reminders[0].fire_at == datetime(2024, 3, 15, 20, 0)

    assert build_reminders([], NOW, total_due=3, completed=0)[0].body.startswith("You still have 3 routines")
    assert build_reminders([], NOW, total_due=3, completed=3) == []
    assert build_reminders([], datetime(2024, 3, 15, 21, 0), total_due=3, completed=0) == []
