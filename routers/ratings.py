from typing import List, Optional

from bson import ObjectId
from fastapi import APIRouter, Depends, Query
from pydantic import Field, field_validator
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from aggregates import on_rating_changed
from database import create_document, get_db, sanitize, to_obj_id, utcnow
from errors import AuthorizationError, ConflictError, NotFoundError
from logger import setup_logger
from policies import ensure_can_modify, is_admin
from queries import attach_refs, paginate, sort_spec
from schemas import ApiModel, ImageUrls, Rating as RatingSchema
from security import get_current_user

router = APIRouter()

logger = setup_logger("api.ratings")

RATING_SORT_FIELDS = {"rating", "helpful_votes", "created_at", "updated_at"}
ALREADY_RATED = "You have already rated this store"


class CreateRatingRequest(ApiModel):
    store: str
    rating: int = Field(..., ge=1, le=5)
    review: Optional[str] = Field(None, max_length=1000)
    images: ImageUrls = Field(default_factory=list)

    @field_validator("store")
    @classmethod
    def valid_store_id(cls, v: str) -> str:
        if not ObjectId.is_valid(v):
            raise ValueError("Valid store ID is required")
        return v


class UpdateRatingRequest(ApiModel):
    rating: Optional[int] = Field(None, ge=1, le=5)
    review: Optional[str] = Field(None, max_length=1000)
    images: Optional[ImageUrls] = None
    # Moderation, admin only
    is_verified: Optional[bool] = None
    reported: Optional[bool] = None


def find_rating_or_404(db, rating_id: str):
    rating = db["rating"].find_one({"_id": to_obj_id(rating_id)})
    if not rating:
        raise NotFoundError("Rating not found")
    return rating


def present(db, ratings: List[dict], store_fields=("name",)):
    attach_refs(db, ratings, "user_id", "user", ("name",), "user")
    attach_refs(db, ratings, "store_id", "store", store_fields, "store")
    return [sanitize(r) for r in ratings]


@router.get("")
def list_ratings(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    store: Optional[str] = None,
    user: Optional[str] = None,
    sort_by: str = Query("createdAt", alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder", pattern="^(asc|desc)$"),
    db=Depends(get_db),
):
    q = {}
    if store:
        q["store_id"] = store
    if user:
        q["user_id"] = user
    result = paginate(db["rating"], q, sort_spec(sort_by, sort_order, RATING_SORT_FIELDS), page, limit)
    return {"ratings": present(db, result.pop("items")), **result}


@router.get("/my-ratings")
def my_ratings(current_user=Depends(get_current_user), db=Depends(get_db)):
    ratings = list(db["rating"].find({"user_id": current_user["id"]}).sort([("created_at", -1), ("_id", -1)]))
    return present(db, ratings, store_fields=("name", "images", "average_rating"))


@router.get("/{rating_id}")
def get_rating(rating_id: str, db=Depends(get_db)):
    return present(db, [find_rating_or_404(db, rating_id)])[0]


@router.post("", status_code=201)
def create_rating(payload: CreateRatingRequest, current_user=Depends(get_current_user), db=Depends(get_db)):
    if not db["store"].find_one({"_id": to_obj_id(payload.store)}, {"_id": 1}):
        raise NotFoundError("Store not found")
    if db["rating"].find_one({"user_id": current_user["id"], "store_id": payload.store}, {"_id": 1}):
        raise ConflictError(ALREADY_RATED)

    rating = RatingSchema(
        user_id=current_user["id"],
        store_id=payload.store,
        rating=payload.rating,
        review=payload.review,
        images=payload.images,
    )
    try:
        doc = create_document(db, "rating", rating)
    except DuplicateKeyError:
        # Lost a race with a concurrent submission for the same pair
        raise ConflictError(ALREADY_RATED)

    on_rating_changed(db, payload.store)

    logger.info(f"User {current_user['id']} rated store {payload.store} {payload.rating}")
    return {"message": "Rating created successfully", "rating": present(db, [doc])[0]}


@router.put("/{rating_id}")
def update_rating(
    rating_id: str,
    payload: UpdateRatingRequest,
    current_user=Depends(get_current_user),
    db=Depends(get_db),
):
    rating = find_rating_or_404(db, rating_id)
    ensure_can_modify(current_user, rating["user_id"], "update this rating")

    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    if ({"is_verified", "reported"} & changes.keys()) and not is_admin(current_user):
        raise AuthorizationError("Only admins can moderate ratings")
    if changes:
        changes["updated_at"] = utcnow()
        rating = db["rating"].find_one_and_update(
            {"_id": rating["_id"]},
            {"$set": changes},
            return_document=ReturnDocument.AFTER,
        )
        on_rating_changed(db, rating["store_id"])
        logger.info(f"Rating {rating_id} updated by {current_user['id']}: {sorted(changes)}")
    return {"message": "Rating updated successfully", "rating": present(db, [rating])[0]}


@router.delete("/{rating_id}")
def delete_rating(rating_id: str, current_user=Depends(get_current_user), db=Depends(get_db)):
    rating = find_rating_or_404(db, rating_id)
    ensure_can_modify(current_user, rating["user_id"], "delete this rating")

    db["rating"].delete_one({"_id": rating["_id"]})
    on_rating_changed(db, rating["store_id"])

    logger.info(f"Rating {rating_id} deleted by {current_user['id']}")
    return {"message": "Rating deleted successfully"}


@router.post("/{rating_id}/helpful")
def mark_helpful(rating_id: str, current_user=Depends(get_current_user), db=Depends(get_db)):
    rating = db["rating"].find_one_and_update(
        {"_id": to_obj_id(rating_id)},
        {"$inc": {"helpful_votes": 1}},
        return_document=ReturnDocument.AFTER,
    )
    if not rating:
        raise NotFoundError("Rating not found")
    return {"message": "Marked as helpful", "helpfulVotes": rating["helpful_votes"]}
