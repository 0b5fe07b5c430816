"""
Public leaderboards
"""


class TestStudentLeaderboard:
    async def test_tie_broken_by_username(self, client, make_group, make_user):
        group = await make_group(name="Alpha")
        await make_user(username="carol", group=group, xp=120)
        await make_user(username="bob", group=group, xp=120)
        await make_user(username="dave", group=group, xp=300)

        response = await client.get("/api/leaderboard")

        assert response.status_code == 200
        rows = response.json()["data"]["leaderboard"]
        assert [(r["rank"], r["username"]) for r in rows] == [(1, "dave"), (2, "bob"), (3, "carol")]
        assert rows[0]["groupName"] == "Alpha"
        assert rows[0]["level"] == 4

    async def test_excludes_zero_xp_inactive_and_staff(self, client, make_group, make_user):
        group = await make_group()
        await make_user(username="active", group=group, xp=10)
        await make_user(username="fresh", group=group, xp=0)
        await make_user(username="gone", group=group, xp=500, is_active=False)
        await make_user(username="mentor", role="admin", xp=900)

        response = await client.get("/api/leaderboard")

        data = response.json()["data"]
        assert [r["username"] for r in data["leaderboard"]] == ["active"]
        assert data["totalStudents"] == 1

    async def test_limit_and_filters_echo(self, client, make_user):
        for xp in (10, 20, 30):
            await make_user(xp=xp)

        response = await client.get("/api/leaderboard?limit=2")

        data = response.json()["data"]
        assert [r["xp"] for r in data["leaderboard"]] == [30, 20]
        assert data["filters"] == {"groupId": None, "limit": 2}

    async def test_limit_must_be_positive(self, client):
        assert (await client.get("/api/leaderboard?limit=0")).status_code == 400

    async def test_large_limit_is_accepted(self, client, make_user):
        await make_user(xp=10)

        response = await client.get("/api/leaderboard?limit=1000")

        assert response.status_code == 200
        data = response.json()["data"]
        assert len(data["leaderboard"]) == 1
        assert data["filters"]["limit"] == 1000

    async def test_group_filter_drops_group_stats(self, client, make_group, make_user):
        g1 = await make_group(name="Alpha")
        g2 = await make_group(name="Beta")
        await make_user(username="a1", group=g1, xp=50)
        await make_user(username="b1", group=g2, xp=70)

        response = await client.get(f"/api/leaderboard?groupId={g1['_id']}")

        data = response.json()["data"]
        assert [r["username"] for r in data["leaderboard"]] == ["a1"]
        assert data["groupStats"] is None
        assert data["filters"]["groupId"] == str(g1["_id"])

    async def test_group_stats(self, client, make_group, make_user):
        g1 = await make_group(name="Alpha")
        g2 = await make_group(name="Beta")
        await make_group(name="Empty")
        await make_user(group=g1, xp=100)
        await make_user(group=g1, xp=50)
        await make_user(group=g2, xp=400)
        await make_user(xp=999)  # no group

        response = await client.get("/api/leaderboard")

        stats = response.json()["data"]["groupStats"]
        assert [s["groupName"] for s in stats] == ["Beta", "Alpha"]
        alpha = stats[1]
        assert alpha == {
            "groupId": str(g1["_id"]),
            "groupName": "Alpha",
            "totalStudents": 2,
            "totalXP": 150,
            "avgXP": 75.0,
            "maxXP": 100,
            "avgLevel": 1.5,
        }


class TestGroupLeaderboard:
    async def test_public_and_ranked(self, client, make_group, make_user):
        admin = await make_user(role="admin", username="mentor")
        g1 = await make_group(name="Alpha", admin=admin)
        g2 = await make_group(name="Beta")
        await make_user(group=g1, xp=10)
        await make_user(group=g2, xp=20)
        await make_user(group=g2, xp=5)

        response = await client.get("/api/leaderboard/groups")

        assert response.status_code == 200
        rows = response.json()["data"]
        assert [(r["rank"], r["groupName"], r["totalXP"]) for r in rows] == [(1, "Beta", 25), (2, "Alpha", 10)]
        assert rows[1]["adminName"] == "mentor"
        assert rows[0]["adminName"] is None
        assert rows[0]["avgXP"] == 12.5
