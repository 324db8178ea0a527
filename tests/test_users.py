from bson import ObjectId


def test_admin_lists_users_with_filters(client, admin, make_user, auth_headers):
    make_user("store-owner", name="Olive Owner")
    make_user("user", name="Oscar User")
    make_user("user", name="Uma User")

    res = client.get("/api/users", params={"role": "user", "search": "oscar"}, headers=auth_headers(admin))

    assert res.status_code == 200
    body = res.json()
    assert [u["name"] for u in body["users"]] == ["Oscar User"]
    assert body["total"] == 1
    assert all("passwordHash" not in u for u in body["users"])


def test_non_admin_cannot_list_users(client, shopper, auth_headers):
    assert client.get("/api/users", headers=auth_headers(shopper)).status_code == 403


def test_admin_creates_store_owner(client, db, admin, auth_headers):
    res = client.post("/api/users", json={
        "name": "Owner To Be",
        "email": "owner.to.be@example.com",
        "address": "9 Shop Lane, Market Town",
        "password": "secret1",
        "role": "store-owner",
    }, headers=auth_headers(admin))

    assert res.status_code == 201
    assert res.json()["role"] == "store-owner"
    assert db["user"].count_documents({"email": "owner.to.be@example.com"}) == 1


def test_user_reads_self_but_not_others(client, shopper, make_user, auth_headers):
    other = make_user()
    assert client.get(f"/api/users/{shopper['_id']}", headers=auth_headers(shopper)).status_code == 200
    assert client.get(f"/api/users/{other['_id']}", headers=auth_headers(shopper)).status_code == 403


def test_user_updates_own_profile(client, db, shopper, auth_headers):
    res = client.put(f"/api/users/{shopper['_id']}", json={"address": "77 New Address Road"},
                     headers=auth_headers(shopper))

    assert res.status_code == 200
    assert res.json()["address"] == "77 New Address Road"
    assert db["user"].find_one({"_id": shopper["_id"]})["address"] == "77 New Address Road"


def test_user_cannot_promote_self(client, db, shopper, auth_headers):
    res = client.put(f"/api/users/{shopper['_id']}", json={"role": "admin"}, headers=auth_headers(shopper))

    assert res.status_code == 403
    assert db["user"].find_one({"_id": shopper["_id"]})["role"] == "user"


def test_admin_deactivates_user(client, db, admin, shopper, auth_headers):
    res = client.put(f"/api/users/{shopper['_id']}", json={"isActive": False}, headers=auth_headers(admin))

    assert res.status_code == 200
    assert res.json()["isActive"] is False
    assert client.get("/api/auth/me", headers=auth_headers(shopper)).status_code == 401


def test_delete_user_removes_ratings_and_recomputes(client, db, admin, owner, shopper, make_user, make_store,
                                                    make_rating, auth_headers):
    store = make_store(owner)
    make_rating(shopper, store, 1)
    make_rating(make_user(), store, 5)
    assert db["store"].find_one({"_id": store["_id"]})["average_rating"] == 3

    res = client.delete(f"/api/users/{shopper['_id']}", headers=auth_headers(admin))

    assert res.status_code == 200
    assert db["user"].find_one({"_id": shopper["_id"]}) is None
    stored = db["store"].find_one({"_id": store["_id"]})
    assert stored["average_rating"] == 5
    assert stored["total_ratings"] == 1


def test_cannot_delete_owner_with_stores(client, admin, owner, make_store, auth_headers):
    make_store(owner)
    res = client.delete(f"/api/users/{owner['_id']}", headers=auth_headers(admin))
    assert res.status_code == 400


def test_admin_cannot_delete_self(client, admin, auth_headers):
    assert client.delete(f"/api/users/{admin['_id']}", headers=auth_headers(admin)).status_code == 400


def test_unknown_user_is_404(client, admin, auth_headers):
    assert client.get(f"/api/users/{ObjectId()}", headers=auth_headers(admin)).status_code == 404
