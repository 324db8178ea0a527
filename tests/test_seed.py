from bson import ObjectId

from conftest import PASSWORD
from seed import seed_database


def test_seed_populates_and_recomputes(db):
    db["rating"].insert_one({"user_id": "stale", "store_id": "stale", "rating": 1})

    ids = seed_database(db)

    assert db["user"].count_documents({}) == 5
    assert db["store"].count_documents({}) == 3
    assert db["rating"].count_documents({}) == 4

    kitchen = db["store"].find_one({"_id": ObjectId(ids["stores"][0])})
    assert kitchen["average_rating"] == 4.5
    assert kitchen["total_ratings"] == 2

    boutique = db["store"].find_one({"_id": ObjectId(ids["stores"][1])})
    assert boutique["average_rating"] == 4
    assert boutique["total_ratings"] == 1


def test_seed_links_owners_to_first_store(db):
    ids = seed_database(db)

    bob = db["user"].find_one({"email": "bob@restaurant.com"})
    alice = db["user"].find_one({"email": "alice@retail.com"})
    assert bob["store_id"] == ids["stores"][0]
    assert alice["store_id"] == ids["stores"][1]
    assert db["user"].find_one({"email": "john@example.com"})["store_id"] is None


def test_seeded_users_can_log_in(client, db):
    seed_database(db)
    res = client.post("/api/auth/login", json={"email": "admin@ratingvoyage.com", "password": "admin123"})
    assert res.status_code == 200
    assert res.json()["user"]["role"] == "admin"

    other = client.post("/api/auth/login", json={"email": "jane@example.com", "password": PASSWORD})
    assert other.status_code == 200
