"""
Populate a development database with demo users, stores and ratings.

    python seed.py

Existing users, stores and ratings are removed first.
"""

from typing import Dict, List

from aggregates import recompute_store_rating
from database import create_document, ensure_indexes
from logger import setup_logger
from schemas import Rating as RatingSchema, Store as StoreSchema, User as UserSchema
from security import hash_password

logger = setup_logger("seed")

USERS = [
    {"name": "Admin User", "email": "admin@ratingvoyage.com", "password": "admin123",
     "address": "123 Admin Street, Admin City", "role": "admin"},
    {"name": "John Doe", "email": "john@example.com", "password": "password123",
     "address": "456 User Street, User City", "role": "user"},
    {"name": "Jane Smith", "email": "jane@example.com", "password": "password123",
     "address": "789 User Avenue, User City", "role": "user"},
    {"name": "Bob Restaurant", "email": "bob@restaurant.com", "password": "password123",
     "address": "321 Restaurant Blvd, Food City", "role": "store-owner"},
    {"name": "Alice Retail", "email": "alice@retail.com", "password": "password123",
     "address": "654 Retail Road, Shop City", "role": "store-owner"},
]

# owner is an index into USERS
STORES = [
    {"name": "The Gourmet Kitchen", "owner": 3, "category": "restaurant",
     "description": "Fine dining restaurant serving exquisite cuisine with a modern twist",
     "address": "123 Gourmet Street, Food City", "phone": "+1234567890", "email": "info@gourmetkitchen.com",
     "images": ["https://example.com/gourmet1.jpg", "https://example.com/gourmet2.jpg"]},
    {"name": "Fashion Boutique", "owner": 4, "category": "retail",
     "description": "Trendy fashion boutique offering the latest styles and accessories",
     "address": "456 Fashion Avenue, Style City", "phone": "+1234567891", "email": "info@fashionboutique.com",
     "images": ["https://example.com/fashion1.jpg", "https://example.com/fashion2.jpg"]},
    {"name": "Tech Service Center", "owner": 4, "category": "service",
     "description": "Professional tech services and repairs for all your electronic needs",
     "address": "789 Tech Street, Tech City", "phone": "+1234567892", "email": "info@techservice.com",
     "images": ["https://example.com/tech1.jpg", "https://example.com/tech2.jpg"]},
]

# (user index, store index, score, review)
RATINGS = [
    (1, 0, 5, "Absolutely amazing food and service! The ambiance was perfect for a special dinner."),
    (2, 0, 4, "Great food, but service was a bit slow during peak hours."),
    (1, 1, 4, "Good selection of clothes and reasonable prices."),
    (2, 2, 5, "Excellent service! Fixed my laptop quickly and professionally."),
]


def seed_database(db) -> Dict[str, List[str]]:
    for name in ("user", "store", "rating"):
        db[name].delete_many({})
    logger.info("Data cleared")

    users = []
    for data in USERS:
        fields = {k: v for k, v in data.items() if k != "password"}
        users.append(create_document(db, "user", UserSchema(password_hash=hash_password(data["password"]), **fields)))
    logger.info(f"Users created: {len(users)}")

    stores = []
    for data in STORES:
        fields = {k: v for k, v in data.items() if k != "owner"}
        store = StoreSchema(owner_id=str(users[data["owner"]]["_id"]), **fields)
        stores.append(create_document(db, "store", store))
    logger.info(f"Stores created: {len(stores)}")

    # Each owner points at the first store they own
    for user in users:
        owned = [s for s in stores if s["owner_id"] == str(user["_id"])]
        if owned:
            db["user"].update_one({"_id": user["_id"]}, {"$set": {"store_id": str(owned[0]["_id"])}})

    for user_idx, store_idx, score, review in RATINGS:
        rating = RatingSchema(
            user_id=str(users[user_idx]["_id"]),
            store_id=str(stores[store_idx]["_id"]),
            rating=score,
            review=review,
        )
        create_document(db, "rating", rating)
    logger.info(f"Ratings created: {len(RATINGS)}")

    for store in stores:
        recompute_store_rating(db, str(store["_id"]))

    logger.info("Database seeded successfully")
    return {
        "users": [str(u["_id"]) for u in users],
        "stores": [str(s["_id"]) for s in stores],
    }


if __name__ == "__main__":
    from database import db

    ensure_indexes(db)
    seed_database(db)
