from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import Field
from pymongo.errors import DuplicateKeyError

from aggregates import recompute_stores
from database import create_document, get_db, sanitize, to_obj_id, utcnow
from errors import AuthorizationError, ConflictError, NotFoundError
from logger import setup_logger
from policies import ensure_can_modify, is_admin
from queries import paginate, search_clause, sort_spec
from schemas import ApiModel, Email, Role, User as UserSchema
from security import get_current_user, hash_password, require_role

router = APIRouter()

logger = setup_logger("api.users")

USER_SORT_FIELDS = {"name", "email", "role", "created_at", "updated_at", "last_login"}


class CreateUserRequest(ApiModel):
    name: str = Field(..., min_length=2, max_length=60)
    email: Email
    address: str = Field(..., min_length=5, max_length=400)
    password: str = Field(..., min_length=6)
    role: Role = "user"


class UpdateUserRequest(ApiModel):
    name: Optional[str] = Field(None, min_length=2, max_length=60)
    email: Optional[Email] = None
    address: Optional[str] = Field(None, min_length=5, max_length=400)
    role: Optional[Role] = None
    is_active: Optional[bool] = None


def find_user_or_404(db, user_id: str):
    user = db["user"].find_one({"_id": to_obj_id(user_id)})
    if not user:
        raise NotFoundError("User not found")
    return user


@router.get("")
def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    role: Optional[Role] = None,
    search: Optional[str] = None,
    sort_by: str = Query("createdAt", alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder", pattern="^(asc|desc)$"),
    admin=Depends(require_role("admin")),
    db=Depends(get_db),
):
    q = search_clause(search, ["name", "email"])
    if role:
        q["role"] = role
    result = paginate(db["user"], q, sort_spec(sort_by, sort_order, USER_SORT_FIELDS), page, limit)
    users = [sanitize(u) for u in result.pop("items")]
    return {"users": users, **result}


@router.post("", status_code=201)
def create_user(payload: CreateUserRequest, admin=Depends(require_role("admin")), db=Depends(get_db)):
    if db["user"].find_one({"email": payload.email}):
        raise ConflictError("User already exists", status_code=409)
    user = UserSchema(
        name=payload.name,
        email=payload.email,
        address=payload.address,
        password_hash=hash_password(payload.password),
        role=payload.role,
    )
    try:
        doc = create_document(db, "user", user)
    except DuplicateKeyError:
        raise ConflictError("User already exists", status_code=409)
    logger.info(f"Admin {admin['id']} created {payload.role} {doc['_id']}")
    return sanitize(doc)


@router.get("/{user_id}")
def get_user(user_id: str, current_user=Depends(get_current_user), db=Depends(get_db)):
    ensure_can_modify(current_user, user_id, "view this user")
    return sanitize(find_user_or_404(db, user_id))


@router.put("/{user_id}")
def update_user(
    user_id: str,
    payload: UpdateUserRequest,
    current_user=Depends(get_current_user),
    db=Depends(get_db),
):
    ensure_can_modify(current_user, user_id, "update this user")
    user = find_user_or_404(db, user_id)
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    if ("role" in changes or "is_active" in changes) and not is_admin(current_user):
        raise AuthorizationError("Only admins can change role or account status")
    if "email" in changes and changes["email"] != user["email"]:
        if db["user"].find_one({"email": changes["email"]}):
            raise ConflictError("Email already in use", status_code=409)
    if changes:
        changes["updated_at"] = utcnow()
        db["user"].update_one({"_id": user["_id"]}, {"$set": changes})
        user.update(changes)
        logger.info(f"User {user_id} updated by {current_user['id']}: {sorted(changes)}")
    return sanitize(user)


@router.delete("/{user_id}")
def delete_user(user_id: str, admin=Depends(require_role("admin")), db=Depends(get_db)):
    user = find_user_or_404(db, user_id)
    if user_id == admin["id"]:
        raise ConflictError("Admins cannot delete their own account")
    if db["store"].count_documents({"owner_id": user_id}):
        raise ConflictError("Delete this user's stores first")

    rated_stores = [r["store_id"] for r in db["rating"].find({"user_id": user_id}, {"store_id": 1})]
    db["rating"].delete_many({"user_id": user_id})
    db["user"].delete_one({"_id": user["_id"]})
    recompute_stores(db, rated_stores)

    logger.info(f"Admin {admin['id']} deleted user {user_id} and {len(rated_stores)} ratings")
    return {"message": f"User {user['name']} deleted successfully"}
