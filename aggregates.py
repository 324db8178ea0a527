"""
Store rating aggregate.

``average_rating`` and ``total_ratings`` on a store are derived from the rating
collection and only ever written here. Rating handlers call
``on_rating_changed`` right after their own write succeeds. The two writes are
not wrapped in a transaction: if the recompute fails the rating write stands
and the aggregate stays stale until the next rating mutation for that store.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, Optional

from database import to_obj_id, utcnow
from logger import setup_logger

logger = setup_logger("aggregates")


def round_rating(value: float) -> float:
    """Round to one decimal, halves away from zero on the scaled value."""
    scaled = Decimal(repr(value * 10)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return float(scaled / 10)


def rating_stats(db, store_id: str) -> Dict[str, float]:
    stats = list(db["rating"].aggregate([
        {"$match": {"store_id": store_id}},
        {"$group": {"_id": None, "avg": {"$avg": "$rating"}, "count": {"$sum": 1}}},
    ]))
    if not stats or not stats[0]["count"]:
        return {"average_rating": 0, "total_ratings": 0}
    return {"average_rating": round_rating(stats[0]["avg"]), "total_ratings": stats[0]["count"]}


def recompute_store_rating(db, store_id: str) -> Optional[Dict]:
    """Refresh a store's aggregate from its ratings.

    Returns the updated aggregate, or None when the store no longer exists.
    """
    key = to_obj_id(store_id)
    if not db["store"].find_one({"_id": key}, {"_id": 1}):
        logger.info(f"Store {store_id} is gone; nothing to recompute")
        return None
    stats = rating_stats(db, store_id)
    db["store"].update_one({"_id": key}, {"$set": {**stats, "updated_at": utcnow()}})
    logger.debug(f"Store {store_id} aggregate now {stats}")
    return stats


def on_rating_changed(db, store_id: str) -> Optional[Dict]:
    return recompute_store_rating(db, store_id)


def recompute_stores(db, store_ids: Iterable[str]) -> None:
    for store_id in set(store_ids):
        recompute_store_rating(db, store_id)
