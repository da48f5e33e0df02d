from datetime import date, timedelta

from fastapi.testclient import TestClient

from routine_api.dates import day_string
from routine_api.main import app

TODAY = day_string(date.today())

DAILY = {"name": "Bromelina", "category": "Supplements", "frequency": {"type": "daily", "times_per_day": 2}}


def _create(client, payload=DAILY):
    resp = client.post("/routines", json=payload)
    assert resp.status_code == 201, resp.text
    return resp.json()


def test_health_needs_no_key():
    assert TestClient(app).get("/health").json() == {"status": "ok"}


def test_api_key_required(client):
    assert TestClient(app).get("/routines").status_code == 401
    assert TestClient(app, headers={"X-API-Key": "wrong"}).get("/routines").status_code == 401
    assert client.get("/routines").status_code == 200


def test_routine_crud(client):
    created = _create(client, {
        **DAILY,
        "description": "with breakfast",
        "time_range": {"start": "09:00"},
        "preferred_days": [1, 2],
    })
    assert created["frequency"] == {"type": "daily", "times_per_day": 2}
    assert created["time_range"] == {"start": "09:00", "end": None}

    rid = created["id"]
    assert client.get(f"/routines/{rid}").json() == created
    assert [r["id"] for r in client.get("/routines").json()] == [rid]

    patched = client.patch(f"/routines/{rid}", json={"frequency": {"type": "interval", "days": 3}})
    assert patched.status_code == 200
    assert patched.json()["frequency"] == {"type": "interval", "days": 3}
    assert patched.json()["created_at"] == created["created_at"]

    paused = client.put(f"/routines/{rid}/paused", json={"paused": True})
    assert paused.json()["paused"] is True

    assert client.delete(f"/routines/{rid}").status_code == 204
    assert client.get(f"/routines/{rid}").status_code == 404
    assert client.delete(f"/routines/{rid}").status_code == 404


def test_routine_validation(client):
    bad = [
        {**DAILY, "frequency": {"type": "daily", "times_per_day": 0}},
        {**DAILY, "frequency": {"type": "monthly", "day": 1}},
        {**DAILY, "frequency": {"type": "weekdays", "days": [8]}},
        {**DAILY, "frequency": {"type": "interval", "days": -2}},
        {**DAILY, "time_range": {"start": "25:00"}},
        {**DAILY, "preferred_days": [0]},
        {**DAILY, "name": ""},
    ]
    for payload in bad:
        assert client.post("/routines", json=payload).status_code == 422, payload


def test_by_category(client):
    _create(client)
    _create(client, {"name": "Gym", "category": "Fitness", "frequency": {"type": "weekly", "times_per_week": 3}})
    grouped = client.get("/routines/by-category").json()
    assert list(grouped) == ["Fitness", "Supplements"]


def test_next_due_listing(client):
    rid = _create(client)["id"]
    resp = client.get("/routines/next-due")
    assert resp.status_code == 200
    assert resp.json() == [{"routine_id": rid, "next_due": TODAY, "urgent": True}]


def test_toggle_cycle_and_stats(client):
    rid = _create(client)["id"]
    url = f"/days/{TODAY}/routines/{rid}/toggle"

    first = client.post(url).json()
    assert (first["count"], first["completed"], first["today"]["percentage"]) == (1, False, 50)

    second = client.post(url).json()
    assert second["completed"] is True
    assert second["level_up"] is False
    assert second["xp_awarded"] == 35
    assert second["gamification"]["xp"] == 35

    third = client.post(url).json()
    assert third["count"] == 0

    assert client.get("/stats/today").json() == {"total": 1, "completed": 0, "percentage": 0}
    assert client.get("/stats/streak").json() == {"streak": 0}


def test_first_completion_reported_once(client):
    rid = _create(client)["id"]
    url = f"/days/{TODAY}/routines/{rid}/toggle"
    assert client.post(url).json()["new_achievement"]["id"] == "first_completion"
    assert client.post(url).json()["new_achievement"]["id"] == "perfect_day"
    assert client.post(url).json()["new_achievement"] is None
    assert client.post(url).json()["new_achievement"] is None


def test_set_count(client):
    rid = _create(client)["id"]
    url = f"/days/{TODAY}/routines/{rid}/count"
    assert client.put(url, json={"count": -1}).status_code == 422
    assert client.put(url, json={"count": 2}).json()["completed"] is True
    assert client.get(f"/days/{TODAY}/completions").json() == [{"routine_id": rid, "day": TODAY, "count": 2}]
    assert client.put(url, json={"count": 0}).json()["count"] == 0
    assert client.get(f"/days/{TODAY}/completions").json() == []


def test_toggle_unknown_routine_404(client):
    assert client.post(f"/days/{TODAY}/routines/nope/toggle").status_code == 404


def test_bad_day_422(client):
    assert client.get("/days/2024-13-01/due").status_code == 422


def test_due_by_weekday(client):
    rid = _create(client, {"name": "Yoga", "category": "Fitness", "frequency": {"type": "weekdays", "days": [1]}})["id"]
    assert [d["routine"]["id"] for d in client.get("/days/2024-01-01/due").json()] == [rid]
    assert client.get("/days/2024-01-02/due").json() == []


def test_heatmaps(client):
    rid = _create(client)["id"]
    client.post(f"/days/{TODAY}/routines/{rid}/toggle")

    week = client.get("/stats/heatmap", params={"window": "week"}).json()
    assert week["window"] == "week"
    assert len(week["days"]) == 7
    assert week["days"][TODAY] == 50.0

    assert client.get("/stats/heatmap", params={"window": "decade"}).status_code == 422

    per_routine = client.get("/stats/routines-heatmap", params={"window": "month"}).json()
    assert len(per_routine["days"]) == 30
    assert per_routine["routines"][rid][TODAY] == {"count": 1, "expected": 2.0}

    mtd = client.get("/stats/heatmap", params={"window": "mtd"}).json()
    assert len(mtd["days"]) == date.today().day


def test_gamification_and_achievements(client):
    state = client.get("/gamification").json()
    assert state == {
        "xp": 0, "level": 1, "achievements": [], "streak_freezes": 0,
        "xp_in_level": 0, "xp_for_next_level": 500,
    }
    catalog = client.get("/achievements").json()
    assert len(catalog) == 9
    assert all(a["unlocked_at"] is None for a in catalog)


def test_reminders(client):
    _create(client, {**DAILY, "time_range": {"start": "23:59"}})
    reminders = client.get("/reminders").json()
    assert isinstance(reminders, list)
    for r in reminders:
        assert date.fromisoformat(r["fire_at"][:10]) in (date.today(), date.today() + timedelta(days=1))


def test_png_endpoints(client):
    rid = _create(client)["id"]
    client.post(f"/days/{TODAY}/routines/{rid}/toggle")

    stats_png = client.get("/stats.png")
    assert stats_png.status_code == 200
    assert stats_png.headers["content-type"] == "image/png"
    assert stats_png.content.startswith(b"\x89PNG")

    heat = client.get("/heatmap.png")
    assert heat.status_code == 200
    assert heat.content.startswith(b"\x89PNG")
    assert client.get("/heatmap.png", params={"year": date.today().year + 1}).status_code == 422
