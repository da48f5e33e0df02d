from datetime import date, datetime

from routine_api import gamification as g
from routine_api.dates import add_days, day_string
from routine_api.ledger import CompletionLedger
from routine_api.schemas import GamificationState

TODAY = date(2024, 3, 15)
NOW = datetime(2024, 3, 15, 12, 0)


def _ctx(routines, ledger, streak=0, pct=0):
    return g.AchievementContext(ledger=ledger, routines=routines, streak=streak, today_percentage=pct, today=TODAY)


def _done(ledger, routine, days):
    for off in range(days):
        ledger.set_count(routine.id, day_string(add_days(TODAY, -off)), 1)


def test_level_curve():
    assert g.calculate_level(0) == 1
    assert g.calculate_level(499) == 1
    assert g.calculate_level(500) == 2
    assert g.calculate_level(1250) == 3
    assert g.calculate_level(10 ** 7) == g.MAX_LEVEL
    assert g.xp_for_next_level(3) == 1500
    assert g.xp_progress_in_level(1250) == 250


def test_catalog_has_nine_fixed_entries():
    assert len(g.ACHIEVEMENT_DEFINITIONS) == 9
    assert set(g.ACHIEVEMENT_RULES) == set(g.ACHIEVEMENTS_BY_ID)


def test_first_completion_and_already_unlocked(make_routine):
    routine = make_routine()
    ledger = CompletionLedger()
    assert "first_completion" not in g.newly_unlocked_achievements([], _ctx([routine], ledger))

    ledger.set_count(routine.id, "2024-03-15", 1)
    assert "first_completion" in g.newly_unlocked_achievements([], _ctx([routine], ledger))
    assert "first_completion" not in g.newly_unlocked_achievements(["first_completion"], _ctx([routine], ledger))


def test_streak_and_perfect_day_predicates(make_routine):
    ctx = _ctx([], CompletionLedger(), streak=30, pct=100)
    ids = g.newly_unlocked_achievements([], ctx)
    assert {"perfect_day", "week_streak", "month_streak"} <= set(ids)
    assert "century" not in ids


def test_perfect_week(make_routine):
    routine = make_routine()
    ledger = CompletionLedger()
    _done(ledger, routine, 7)
    assert "perfect_week" in g.newly_unlocked_achievements([], _ctx([routine], ledger))

    ledger.set_count(routine.id, day_string(add_days(TODAY, -3)), 0)
    assert "perfect_week" not in g.newly_unlocked_achievements([], _ctx([routine], ledger))


def test_perfect_week_skips_days_with_nothing_due(make_routine):
    # Mondays only: 2024-03-11 is the single Monday in the window
    routine = make_routine({"type": "weekdays", "days": [1]})
    ledger = CompletionLedger()
    ledger.set_count(routine.id, "2024-03-11", 1)
    assert "perfect_week" in g.newly_unlocked_achievements([], _ctx([routine], ledger))


def test_category_masters(make_routine):
    supplement = make_routine(category="Supplements")
    skincare = make_routine(category="Skincare")
    ledger = CompletionLedger()
    _done(ledger, supplement, 30)
    _done(ledger, skincare, 29)

    ids = g.newly_unlocked_achievements([], _ctx([supplement, skincare], ledger))
    assert "supplement_master" in ids
    assert "skincare_queen" not in ids


def test_category_master_needs_a_routine_in_category(make_routine):
    ids = g.newly_unlocked_achievements([], _ctx([make_routine(category="Fitness")], CompletionLedger()))
    assert "supplement_master" not in ids
    assert "skincare_queen" not in ids


def test_fitness_fanatic_counts_records_not_sums(make_routine):
    fitness = make_routine(category="Fitness", frequency={"type": "daily", "times_per_day": 3})
    ledger = CompletionLedger()
    for off in range(19):
        ledger.set_count(fitness.id, day_string(add_days(TODAY, -off)), 3)
    assert "fitness_fanatic" not in g.newly_unlocked_achievements([], _ctx([fitness], ledger))

    ledger.set_count(fitness.id, day_string(add_days(TODAY, -19)), 1)
    assert "fitness_fanatic" in g.newly_unlocked_achievements([], _ctx([fitness], ledger))


def test_crossed_milestones_are_edge_triggered():
    assert g.crossed_milestones(6, 7) == [7]
    assert g.crossed_milestones(7, 8) == []
    assert g.crossed_milestones(0, 30) == [7, 30]
    assert g.crossed_milestones(8, 6) == []


def test_process_completion_change_awards(make_routine):
    routine = make_routine()
    ledger = CompletionLedger()
    ledger.set_count(routine.id, "2024-03-15", 1)
    ctx = _ctx([routine], ledger, streak=1, pct=100)

    outcome = g.process_completion_change(
        GamificationState(), completed_now=True, perfect_day_bonus_available=True,
        prev_streak=0, ctx=ctx, now=NOW,
    )
    assert outcome.xp_awarded == g.XP_PER_COMPLETION + g.XP_PERFECT_DAY_BONUS
    assert outcome.state.xp == 35
    assert outcome.perfect_day_bonus_awarded
    assert not outcome.level_up
    assert [a.id for a in outcome.new_achievements][:2] == ["first_completion", "perfect_day"]
    assert outcome.new_achievement.id == "first_completion"
    assert outcome.new_achievement.unlocked_at == NOW


def test_process_completion_change_without_completion(make_routine):
    ctx = _ctx([make_routine()], CompletionLedger(), streak=0, pct=0)
    state = GamificationState(xp=40, level=1)
    outcome = g.process_completion_change(
        state, completed_now=False, perfect_day_bonus_available=False,
        prev_streak=0, ctx=ctx, now=NOW,
    )
    assert outcome.xp_awarded == 0
    assert outcome.state.xp == 40
    assert outcome.new_achievements == []


def test_level_up_and_milestone(make_routine):
    ctx = _ctx([make_routine()], CompletionLedger(), streak=7, pct=50)
    outcome = g.process_completion_change(
        GamificationState(xp=395, level=1), completed_now=True, perfect_day_bonus_available=False,
        prev_streak=6, ctx=ctx, now=NOW,
    )
    assert outcome.milestones == [7]
    assert outcome.state.xp == 505
    assert outcome.state.level == 2
    assert outcome.level_up
