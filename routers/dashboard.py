from fastapi import APIRouter, Depends, Query

from aggregates import round_rating
from database import get_db, sanitize, utcnow
from policies import ensure_can_modify
from queries import attach_refs
from routers.stores import find_store_or_404
from security import get_current_user, require_role

router = APIRouter()

NEWEST_FIRST = [("created_at", -1), ("_id", -1)]


def month_start():
    now = utcnow()
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


@router.get("/stats")
def stats(admin=Depends(require_role("admin")), db=Depends(get_db)):
    since = {"created_at": {"$gte": month_start()}}
    return {
        "totalUsers": db["user"].count_documents({}),
        "totalStores": db["store"].count_documents({}),
        "totalRatings": db["rating"].count_documents({}),
        "activeUsers": db["user"].count_documents({"is_active": True}),
        "activeStores": db["store"].count_documents({"is_active": True}),
        "usersThisMonth": db["user"].count_documents(since),
        "storesThisMonth": db["store"].count_documents(since),
        "ratingsThisMonth": db["rating"].count_documents(since),
    }


@router.get("/user-stats")
def user_stats(current_user=Depends(get_current_user), db=Depends(get_db)):
    user_id = current_user["id"]
    recent = list(db["rating"].find({"user_id": user_id}).sort(NEWEST_FIRST).limit(5))
    attach_refs(db, recent, "store_id", "store", ("name", "images"), "store")
    return {
        "userRatings": db["rating"].count_documents({"user_id": user_id}),
        "userStores": db["store"].count_documents({"owner_id": user_id}),
        "recentRatings": [sanitize(r) for r in recent],
    }


@router.get("/store-stats/{store_id}")
def store_stats(store_id: str, current_user=Depends(get_current_user), db=Depends(get_db)):
    store = find_store_or_404(db, store_id)
    ensure_can_modify(current_user, store["owner_id"], "access this store dashboard")

    scores = [r["rating"] for r in db["rating"].find({"store_id": store_id}, {"rating": 1})]
    average = sum(scores) / len(scores) if scores else 0

    recent = list(db["rating"].find({"store_id": store_id}).sort(NEWEST_FIRST).limit(5))
    attach_refs(db, recent, "user_id", "user", ("name",), "user")

    trend = db["rating"].aggregate([
        {"$match": {"store_id": store_id}},
        {"$group": {
            "_id": {"year": {"$year": "$created_at"}, "month": {"$month": "$created_at"}},
            "count": {"$sum": 1},
            "averageRating": {"$avg": "$rating"},
        }},
        {"$sort": {"_id.year": -1, "_id.month": -1}},
        {"$limit": 6},
    ])
    monthly = [
        {
            "year": t["_id"]["year"],
            "month": t["_id"]["month"],
            "count": t["count"],
            "averageRating": round_rating(t["averageRating"]),
        }
        for t in trend
    ]

    return {
        "totalRatings": len(scores),
        "averageRating": round_rating(average),
        "recentRatings": [sanitize(r) for r in recent],
        "monthlyTrend": monthly,
    }


@router.get("/top-rated-stores")
def top_rated_stores(limit: int = Query(10, ge=1, le=100), db=Depends(get_db)):
    projection = {"name": 1, "images": 1, "average_rating": 1, "total_ratings": 1, "category": 1}
    stores = db["store"].find({"is_active": True}, projection).sort(
        [("average_rating", -1), ("total_ratings", -1), ("_id", -1)]
    ).limit(limit)
    return [sanitize(s) for s in stores]


@router.get("/recent-activity")
def recent_activity(
    limit: int = Query(10, ge=1, le=100),
    admin=Depends(require_role("admin")),
    db=Depends(get_db),
):
    users = db["user"].find({}, {"name": 1, "email": 1, "role": 1, "created_at": 1}).sort(NEWEST_FIRST).limit(limit)
    stores = db["store"].find({}, {"name": 1, "category": 1, "owner_id": 1, "created_at": 1}).sort(NEWEST_FIRST).limit(limit)
    ratings = list(db["rating"].find().sort(NEWEST_FIRST).limit(limit))
    attach_refs(db, ratings, "user_id", "user", ("name",), "user")
    attach_refs(db, ratings, "store_id", "store", ("name",), "store")
    return {
        "recentUsers": [sanitize(u) for u in users],
        "recentStores": [sanitize(s) for s in stores],
        "recentRatings": [sanitize(r) for r in ratings],
    }
