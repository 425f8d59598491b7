"""Endpoint tests through the ASGI app with the in-memory database.

Covers:
  - status, day-log upsert, weight and fasting logging
  - analytics snapshot, comparison, single and batch export, export download
  - daily XP, achievement checks, leaderboard, stats, XP history, avatar mood
  - weight/fasting stats and fasting patterns
"""
from datetime import date, datetime, timedelta, timezone

import pytest

from hardlevel.services.achievement_seeder import seed_achievements

from tests.factories import END_DATE, days_before, tasks_done

API = "/api/v1"


async def put_log(client, user_id, day, count):
    resp = await client.put(f"{API}/tracking/{user_id}/logs/{day.isoformat()}", json={"tasks": tasks_done(count)})
    assert resp.status_code == 200
    return resp.json()


async def put_three_day_example(client, user_id="u1"):
    d1, d2, d3 = days_before(END_DATE, 3)
    await put_log(client, user_id, d1, 6)
    await put_log(client, user_id, d2, 3)
    await put_log(client, user_id, d3, 0)


@pytest.fixture
async def seeded(db):
    await seed_achievements(db)
    await db.commit()


# =============================================================================
# STATUS AND TRACKING
# =============================================================================

class TestStatus:
    async def test_status(self, client):
        resp = await client.get(f"{API}/status")
        assert resp.status_code == 200
        assert resp.json() == {"status": "healthy", "version": "0.1.0", "database": "ok"}

    async def test_root(self, client):
        resp = await client.get("/")
        assert resp.status_code == 200
        assert resp.json()["status"] == "/api/v1/status"


class TestTrackingEndpoints:
    async def test_upsert_day_log(self, client):
        data = await put_log(client, "u1", END_DATE, 3)
        assert data["completion"]["completionPercentage"] == 50
        assert data["completion"]["completedTasks"] == 3

    async def test_upsert_replaces(self, client):
        await put_log(client, "u1", END_DATE, 6)
        data = await put_log(client, "u1", END_DATE, 1)
        assert data["completion"]["completedTasks"] == 1

    async def test_unknown_tasks_dropped(self, client):
        resp = await client.put(
            f"{API}/tracking/u1/logs/2025-01-13",
            json={"tasks": {"workout1": True, "meditate": True}},
        )
        assert resp.status_code == 200
        assert "meditate" not in resp.json()["tasks"]
        assert resp.json()["completion"]["completedTasks"] == 1

    async def test_log_weight(self, client):
        resp = await client.post(f"{API}/tracking/u1/weight", json={"date": "2025-01-13", "weight": 80.5})
        assert resp.status_code == 201
        assert resp.json()["status"] == "created"

    async def test_log_weight_rejects_bad_values(self, client):
        resp = await client.post(f"{API}/tracking/u1/weight", json={"date": "2025-01-13", "weight": -1})
        assert resp.status_code == 422
        resp = await client.post(f"{API}/tracking/u1/weight", json={"date": "2025-01-13", "weight": 80, "unit": "st"})
        assert resp.status_code == 422

    async def test_log_fast(self, client):
        resp = await client.post(f"{API}/tracking/u1/fasting", json={
            "date": "2025-01-13",
            "start_time": "2025-01-12T20:00:00Z",
            "end_time": "2025-01-13T12:00:00Z",
            "target_hours": 16,
            "pattern": "16:8",
        })
        assert resp.status_code == 201


# =============================================================================
# ANALYTICS
# =============================================================================

class TestAnalyticsEndpoints:
    async def test_snapshot(self, client):
        await put_three_day_example(client)

        resp = await client.get(f"{API}/analytics/u1", params={"time_range": "7D", "end_date": "2025-01-13"})
        assert resp.status_code == 200
        data = resp.json()

        stats = data["periodStats"]
        assert stats["averageCompletion"] == 50
        assert stats["perfectDays"] == 1
        assert stats["activeDays"] == 2
        assert stats["longestStreak"] == 2
        assert stats["currentStreak"] == 0
        assert data["timeRange"] == "7D"
        assert data["dateRange"] == {"startDate": "2025-01-07", "endDate": "2025-01-13"}
        assert data["completionTrend"]["trend"] == "down"
        assert set(data["taskTrends"]) == {"workout1", "workout2", "diet", "water", "reading", "photo"}

    async def test_unknown_user(self, client):
        resp = await client.get(f"{API}/analytics/nobody", params={"end_date": "2025-01-13"})
        assert resp.status_code == 200
        assert resp.json()["periodStats"]["totalDays"] == 30
        assert resp.json()["periodStats"]["activeDays"] == 0

    async def test_invalid_time_range(self, client):
        resp = await client.get(f"{API}/analytics/u1", params={"time_range": "14D"})
        assert resp.status_code == 422

    async def test_comparison(self, client):
        for day in days_before(END_DATE, 7):
            await put_log(client, "u1", day, 6)
        for day in days_before(date(2025, 1, 6), 7):
            await put_log(client, "u1", day, 3)

        resp = await client.get(f"{API}/analytics/u1/comparison", params={"end_date": "2025-01-13"})
        assert resp.status_code == 200
        improvements = resp.json()["improvements"]
        assert improvements["averageCompletion"] == 50
        assert improvements["perfectDays"] == 7
        assert improvements["currentStreak"] == 0


class TestExportEndpoints:
    async def test_export_and_download_csv(self, client):
        await put_three_day_example(client)

        resp = await client.post(
            f"{API}/analytics/u1/export",
            params={"format": "CSV", "time_range": "7D", "end_date": "2025-01-13"},
        )
        assert resp.status_code == 200
        result = resp.json()
        assert result["success"] is True
        assert result["format"] == "CSV"
        assert result["metadata"]["totalRecords"] == 3

        download = await client.get(result["downloadUrl"])
        assert download.status_code == 200
        assert download.headers["content-type"].startswith("text/csv")
        lines = download.text.splitlines()
        assert lines[0].startswith("Date,Workout1")
        assert len(lines) == 4

    async def test_export_json_with_options(self, client):
        await put_three_day_example(client)

        resp = await client.post(
            f"{API}/analytics/u1/export",
            params={"format": "JSON", "time_range": "7D", "end_date": "2025-01-13"},
            json={"date_format": "readable"},
        )
        assert resp.status_code == 200

        download = await client.get(resp.json()["downloadUrl"])
        assert download.json()["data"][0]["date"] == "1/11/2025"

    async def test_invalid_format(self, client):
        resp = await client.post(f"{API}/analytics/u1/export", params={"format": "XML"})
        assert resp.status_code == 422

    async def test_batch(self, client):
        await put_three_day_example(client, "u1")
        await put_log(client, "u2", END_DATE, 6)

        resp = await client.post(f"{API}/analytics/export/batch", json={
            "user_ids": ["u1", "u2"],
            "time_range": "ALL",
            "format": "JSON",
        })
        assert resp.status_code == 200
        result = resp.json()
        assert result["exportCount"] == 2
        assert result["metadata"]["totalUsers"] == 2
        assert result["filename"].startswith("90hard_batch_2users_ALL_")

    async def test_batch_requires_users(self, client):
        resp = await client.post(f"{API}/analytics/export/batch", json={"user_ids": []})
        assert resp.status_code == 422

    async def test_download_missing(self, client):
        resp = await client.get(f"{API}/exports/nothing.csv")
        assert resp.status_code == 404


# =============================================================================
# GAMIFICATION
# =============================================================================

class TestDailyXPEndpoint:
    async def test_explicit_percentage(self, client):
        resp = await client.post(f"{API}/gamification/u1/daily-xp", json={
            "date": "2025-01-13",
            "completion_percentage": 100,
            "check_achievements": False,
        })
        assert resp.status_code == 200
        data = resp.json()
        assert data["baseXp"] == 100
        assert data["bonusXp"] == 10
        assert data["totalXp"] == 110
        assert data["breakdown"]["perfectDayBonus"] == 10
        assert data["levelUp"] is False
        assert data["newLevel"] == 1

    async def test_uses_logged_completion(self, client):
        await put_log(client, "u1", END_DATE, 3)

        resp = await client.post(f"{API}/gamification/u1/daily-xp", json={
            "date": "2025-01-13",
            "check_achievements": False,
        })
        assert resp.json()["baseXp"] == 50

    async def test_unlogged_day_earns_nothing(self, client):
        resp = await client.post(f"{API}/gamification/u1/daily-xp", json={"date": "2025-01-13"})
        assert resp.status_code == 200
        assert resp.json()["totalXp"] == 0

    async def test_unlocks_achievements_once(self, client, seeded):
        for day in days_before(END_DATE, 3):
            await put_log(client, "u1", day, 6)

        first = await client.post(f"{API}/gamification/u1/daily-xp", json={"date": "2025-01-13"})
        ids = {a["id"] for a in first.json()["achievementsUnlocked"]}
        assert {"streak_days_3", "perfect_days_1", "completion_rate_100"} <= ids
        assert "streak_days_7" not in ids

        second = await client.post(f"{API}/gamification/u1/daily-xp", json={"date": "2025-01-13"})
        assert second.json()["achievementsUnlocked"] == []

    async def test_percentage_out_of_range(self, client):
        resp = await client.post(f"{API}/gamification/u1/daily-xp", json={
            "date": "2025-01-13",
            "completion_percentage": 120,
        })
        assert resp.status_code == 422


class TestAchievementCheckEndpoint:
    async def test_check(self, client, seeded):
        for day in days_before(END_DATE, 5):
            await put_log(client, "u1", day, 6)

        resp = await client.post(
            f"{API}/gamification/u1/achievements/check",
            params={"time_range": "7D", "end_date": "2025-01-13"},
        )
        assert resp.status_code == 200
        data = resp.json()
        ids = {a["id"] for a in data["achievements"]}
        assert {"streak_days_3", "perfect_days_1", "perfect_days_5"} <= ids
        assert data["xp_reward_total"] == sum(a["xpReward"] for a in data["achievements"])

        again = await client.post(
            f"{API}/gamification/u1/achievements/check",
            params={"time_range": "7D", "end_date": "2025-01-13"},
        )
        assert again.json() == {"achievements": [], "xp_reward_total": 0}


class TestLeaderboardAndStats:
    async def award(self, client, user_id, pct, day="2025-01-13"):
        resp = await client.post(f"{API}/gamification/{user_id}/daily-xp", json={
            "date": day,
            "completion_percentage": pct,
            "check_achievements": False,
        })
        assert resp.status_code == 200

    async def test_leaderboard(self, client):
        await self.award(client, "alice", 50)
        await self.award(client, "bob", 100)
        await self.award(client, "carol", 100)

        resp = await client.get(f"{API}/gamification/leaderboard")
        assert resp.status_code == 200
        board = resp.json()
        assert [e["userId"] for e in board["entries"]] == ["bob", "carol", "alice"]
        assert [e["position"] for e in board["entries"]] == [1, 2, 3]
        assert board["totalParticipants"] == 3

    async def test_leaderboard_limit_and_type(self, client):
        await self.award(client, "alice", 50)
        await self.award(client, "bob", 100)

        resp = await client.get(f"{API}/gamification/leaderboard", params={"limit": 1, "type": "weekly", "time_range": "7D"})
        board = resp.json()
        assert [e["userId"] for e in board["entries"]] == ["bob"]
        assert board["id"].startswith("weekly-7D-")

    async def test_stats_404_without_xp(self, client):
        resp = await client.get(f"{API}/gamification/nobody/stats")
        assert resp.status_code == 404

    async def test_stats(self, client):
        await self.award(client, "u1", 100)
        await self.award(client, "u1", 100, day="2025-01-12")

        resp = await client.get(f"{API}/gamification/u1/stats")
        assert resp.status_code == 200
        data = resp.json()
        assert data["totalXp"] == 220
        assert data["currentLevel"] == 2
        assert data["rank"] == "D"
        assert data["leaderboardPosition"] == 1

    async def test_xp_history(self, client):
        await self.award(client, "u1", 40, day="2025-01-12")
        await self.award(client, "u1", 60)

        resp = await client.get(f"{API}/gamification/u1/xp-history", params={"limit": 1})
        assert resp.status_code == 200
        history = resp.json()
        assert len(history) == 1
        assert history[0]["totalXp"] == 60
        assert history[0]["source"] == "daily_completion"


class TestAvatarEndpoints:
    async def test_update_then_get(self, client):
        resp = await client.post(f"{API}/gamification/u1/avatar-mood", json={
            "completion_rate": 60,
            "streak_length": 4,
            "recent_achievements": 0,
        })
        assert resp.status_code == 200
        assert resp.json()["currentMood"] == "happy"
        assert resp.json()["pose"] == "flexing"

        resp = await client.get(f"{API}/gamification/u1/avatar-mood")
        assert resp.status_code == 200
        assert resp.json()["triggers"]["streakLength"] == 4

    async def test_get_missing(self, client):
        resp = await client.get(f"{API}/gamification/nobody/avatar-mood")
        assert resp.status_code == 404


# =============================================================================
# HEALTH STATS
# =============================================================================

class TestHealthEndpoints:
    async def test_weight_stats(self, client):
        today = datetime.now(timezone.utc).date()
        for offset, weight in ((2, 81.0), (1, 80.2), (0, 80.0)):
            resp = await client.post(f"{API}/tracking/u1/weight", json={
                "date": (today - timedelta(days=offset)).isoformat(),
                "weight": weight,
            })
            assert resp.status_code == 201

        resp = await client.get(f"{API}/health/u1/weight-stats")
        assert resp.status_code == 200
        data = resp.json()
        assert data["currentWeight"] == 80.0
        assert data["previousWeight"] == 80.2
        assert data["delta"] == -0.2
        assert data["trend"] == "down"

    async def test_weight_stats_404(self, client):
        resp = await client.get(f"{API}/health/nobody/weight-stats")
        assert resp.status_code == 404

    async def test_fasting_stats(self, client):
        today = datetime.now(timezone.utc).date()
        start = datetime.combine(today - timedelta(days=1), datetime.min.time(), tzinfo=timezone.utc)
        resp = await client.post(f"{API}/tracking/u1/fasting", json={
            "date": today.isoformat(),
            "start_time": start.isoformat(),
            "end_time": (start + timedelta(hours=18)).isoformat(),
            "target_hours": 16,
        })
        assert resp.status_code == 201

        resp = await client.get(f"{API}/health/u1/fasting-stats")
        assert resp.status_code == 200
        data = resp.json()
        assert data["totalFasts"] == 1
        assert data["successRate"] == 100
        assert data["currentStreak"] == 1

    async def test_fasting_pattern(self, client):
        resp = await client.get(f"{API}/health/fasting-patterns/18:6")
        assert resp.json() == {
            "fastingHours": 18,
            "eatingHours": 6,
            "description": "18 hour fast, 6 hour eating window",
        }

    async def test_unknown_fasting_pattern(self, client):
        resp = await client.get(f"{API}/health/fasting-patterns/nonsense")
        assert resp.json()["description"] == "Unknown fasting pattern"
