from typing import Dict, Optional, Tuple

from fastapi import APIRouter, Depends, Query
from pydantic import Field

from database import create_document, get_db, sanitize, to_obj_id, utcnow
from errors import NotFoundError, ValidationError
from logger import setup_logger
from policies import ensure_can_modify, is_admin
from queries import attach_refs, paginate, search_clause, sort_spec
from schemas import (
    ApiModel,
    Category,
    DayHours,
    Email,
    GeoPoint,
    ImageUrls,
    Phone,
    Store as StoreSchema,
    Website,
    default_hours,
)
from security import get_current_user, require_role

router = APIRouter()

logger = setup_logger("api.stores")

STORE_SORT_FIELDS = {"name", "category", "average_rating", "total_ratings", "created_at", "updated_at"}
OWNER_FIELDS = ("name", "email")


class CreateStoreRequest(ApiModel):
    name: str = Field(..., min_length=2, max_length=200)
    description: str = Field(..., min_length=10, max_length=1000)
    category: Category
    address: str = Field(..., min_length=5, max_length=400)
    phone: Phone
    email: Email
    website: Website = None
    images: ImageUrls = Field(default_factory=list)
    operating_hours: Dict[str, DayHours] = Field(default_factory=default_hours)
    location: GeoPoint = Field(default_factory=GeoPoint)
    # Admins may create a store on behalf of a store-owner
    owner_id: Optional[str] = None


class UpdateStoreRequest(ApiModel):
    name: Optional[str] = Field(None, min_length=2, max_length=200)
    description: Optional[str] = Field(None, min_length=10, max_length=1000)
    category: Optional[Category] = None
    address: Optional[str] = Field(None, min_length=5, max_length=400)
    phone: Optional[Phone] = None
    email: Optional[Email] = None
    website: Website = None
    images: Optional[ImageUrls] = None
    operating_hours: Optional[Dict[str, DayHours]] = None
    location: Optional[GeoPoint] = None
    is_active: Optional[bool] = None


def find_store_or_404(db, store_id: str):
    store = db["store"].find_one({"_id": to_obj_id(store_id)})
    if not store:
        raise NotFoundError("Store not found")
    return store


def present(db, stores):
    attach_refs(db, stores, "owner_id", "user", OWNER_FIELDS, "owner")
    return [sanitize(s) for s in stores]


def resolve_owner(db, payload: CreateStoreRequest, current_user) -> Tuple[str, str]:
    """Return ``(owner_id, owner_role)`` for a new store."""
    if not payload.owner_id or payload.owner_id == current_user["id"]:
        return current_user["id"], current_user["role"]
    if not is_admin(current_user):
        raise ValidationError(
            "Only admins can assign a store to another owner",
            errors=[{"field": "ownerId", "message": "Only admins can assign a store to another owner"}],
        )
    owner = db["user"].find_one({"_id": to_obj_id(payload.owner_id)})
    if not owner or owner.get("role") != "store-owner":
        raise ValidationError(
            "ownerId must be a valid store owner",
            errors=[{"field": "ownerId", "message": "ownerId must be a valid store owner"}],
        )
    return payload.owner_id, owner["role"]


def relink_owner(db, owner_id: str, store_id: str) -> None:
    # Point the owner at their newest remaining store, if the link was to this one
    remaining = db["store"].find_one({"owner_id": owner_id}, sort=[("created_at", -1), ("_id", -1)])
    db["user"].update_one(
        {"_id": to_obj_id(owner_id), "store_id": store_id},
        {"$set": {"store_id": str(remaining["_id"]) if remaining else None, "updated_at": utcnow()}},
    )


@router.get("")
def list_stores(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    category: Optional[Category] = None,
    search: Optional[str] = None,
    sort_by: str = Query("createdAt", alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder", pattern="^(asc|desc)$"),
    db=Depends(get_db),
):
    q = {"is_active": True, **search_clause(search, ["name", "description"])}
    if category:
        q["category"] = category
    result = paginate(db["store"], q, sort_spec(sort_by, sort_order, STORE_SORT_FIELDS), page, limit)
    return {"stores": present(db, result.pop("items")), **result}


@router.get("/my-stores")
def my_stores(current_user=Depends(get_current_user), db=Depends(get_db)):
    stores = list(db["store"].find({"owner_id": current_user["id"]}).sort([("created_at", -1), ("_id", -1)]))
    return present(db, stores)


@router.get("/{store_id}")
def get_store(store_id: str, db=Depends(get_db)):
    return present(db, [find_store_or_404(db, store_id)])[0]


@router.post("", status_code=201)
def create_store(
    payload: CreateStoreRequest,
    current_user=Depends(require_role("store-owner", "admin")),
    db=Depends(get_db),
):
    owner_id, owner_role = resolve_owner(db, payload, current_user)
    store = StoreSchema(owner_id=owner_id, **payload.model_dump(exclude={"owner_id"}))
    doc = create_document(db, "store", store)
    store_id = str(doc["_id"])

    # Only store owners carry a store link
    if owner_role == "store-owner":
        db["user"].update_one({"_id": to_obj_id(owner_id)}, {"$set": {"store_id": store_id, "updated_at": utcnow()}})

    logger.info(f"Store {store_id} created for owner {owner_id} by {current_user['id']}")
    return {"message": "Store created successfully", "store": present(db, [doc])[0]}


@router.put("/{store_id}")
def update_store(
    store_id: str,
    payload: UpdateStoreRequest,
    current_user=Depends(get_current_user),
    db=Depends(get_db),
):
    store = find_store_or_404(db, store_id)
    ensure_can_modify(current_user, store["owner_id"], "update this store")

    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    if changes:
        changes["updated_at"] = utcnow()
        db["store"].update_one({"_id": store["_id"]}, {"$set": changes})
        store.update(changes)
        logger.info(f"Store {store_id} updated by {current_user['id']}: {sorted(changes)}")
    return {"message": "Store updated successfully", "store": present(db, [store])[0]}


@router.delete("/{store_id}")
def delete_store(store_id: str, current_user=Depends(get_current_user), db=Depends(get_db)):
    store = find_store_or_404(db, store_id)
    ensure_can_modify(current_user, store["owner_id"], "delete this store")

    db["store"].delete_one({"_id": store["_id"]})
    relink_owner(db, store["owner_id"], store_id)

    logger.info(f"Store {store_id} deleted by {current_user['id']}")
    return {"message": "Store deleted successfully"}
