from datetime import datetime

from database import utcnow


def test_admin_stats(client, db, admin, owner, shopper, make_store, make_rating, auth_headers):
    store = make_store(owner)
    make_store(owner, is_active=False)
    make_rating(shopper, store, 4)
    # An old account outside the current month
    db["user"].update_one({"_id": shopper["_id"]}, {"$set": {"created_at": datetime(2020, 1, 1)}})

    res = client.get("/api/dashboard/stats", headers=auth_headers(admin))

    assert res.status_code == 200
    stats = res.json()
    assert stats["totalUsers"] == 3
    assert stats["totalStores"] == 2
    assert stats["totalRatings"] == 1
    assert stats["activeStores"] == 1
    assert stats["usersThisMonth"] == 2
    assert stats["ratingsThisMonth"] == 1


def test_user_stats(client, owner, shopper, make_store, make_rating, auth_headers):
    for _ in range(6):
        make_rating(shopper, make_store(owner), 5)

    res = client.get("/api/dashboard/user-stats", headers=auth_headers(shopper))

    body = res.json()
    assert body["userRatings"] == 6
    assert body["userStores"] == 0
    assert len(body["recentRatings"]) == 5
    assert body["recentRatings"][0]["store"]["name"].startswith("Store")


def test_store_stats_for_owner(client, owner, make_user, make_store, make_rating, auth_headers):
    store = make_store(owner)
    for score in (5, 4, 4):
        make_rating(make_user(), store, score)

    res = client.get(f"/api/dashboard/store-stats/{store['_id']}", headers=auth_headers(owner))

    assert res.status_code == 200
    body = res.json()
    assert body["totalRatings"] == 3
    assert body["averageRating"] == 4.3
    assert len(body["recentRatings"]) == 3
    now = utcnow()
    assert body["monthlyTrend"] == [{"year": now.year, "month": now.month, "count": 3, "averageRating": 4.3}]


def test_store_stats_forbidden_for_other_owner(client, owner, make_user, make_store, auth_headers):
    store = make_store(owner)
    res = client.get(f"/api/dashboard/store-stats/{store['_id']}", headers=auth_headers(make_user("store-owner")))
    assert res.status_code == 403


def test_top_rated_stores_ordering(client, owner, make_user, make_store, make_rating):
    best = make_store(owner, name="Best Store")
    popular = make_store(owner, name="Popular Store")
    hidden = make_store(owner, name="Hidden Store", is_active=False)
    make_rating(make_user(), best, 5)
    make_rating(make_user(), popular, 4)
    make_rating(make_user(), popular, 4)
    make_rating(make_user(), hidden, 5)

    res = client.get("/api/dashboard/top-rated-stores", params={"limit": 5})

    names = [s["name"] for s in res.json()]
    assert names[:2] == ["Best Store", "Popular Store"]
    assert "Hidden Store" not in names
    assert set(res.json()[0]) == {"id", "name", "images", "averageRating", "totalRatings", "category"}


def test_recent_activity_admin_only(client, admin, owner, shopper, make_store, make_rating, auth_headers):
    make_rating(shopper, make_store(owner), 3)

    assert client.get("/api/dashboard/recent-activity", headers=auth_headers(shopper)).status_code == 403

    res = client.get("/api/dashboard/recent-activity", headers=auth_headers(admin))
    body = res.json()
    assert len(body["recentUsers"]) == 3
    assert len(body["recentStores"]) == 1
    assert body["recentRatings"][0]["user"]["name"] == shopper["name"]
    assert all("passwordHash" not in u for u in body["recentUsers"])
