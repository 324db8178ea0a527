from typing import Any, Dict

from fastapi import APIRouter, Depends
from pydantic import Field
from pymongo.errors import DuplicateKeyError

from database import create_document, get_db, sanitize, to_obj_id, utcnow
from errors import AuthenticationError, ConflictError, NotFoundError, ValidationError
from logger import setup_logger
from schemas import ApiModel, Email, User as UserSchema
from security import get_current_user, hash_password, token_for, verify_password

router = APIRouter()

logger = setup_logger("api.auth")


class RegisterRequest(ApiModel):
    name: str = Field(..., min_length=2, max_length=60)
    email: Email
    address: str = Field(..., min_length=5, max_length=400)
    password: str = Field(..., min_length=6)


class LoginRequest(ApiModel):
    email: Email
    password: str


class UpdatePasswordRequest(ApiModel):
    current_password: str
    new_password: str = Field(..., min_length=6)


class TokenResponse(ApiModel):
    token: str
    user: Dict[str, Any]


@router.post("/register", status_code=201, response_model=TokenResponse)
def register(payload: RegisterRequest, db=Depends(get_db)):
    if db["user"].find_one({"email": payload.email}):
        raise ConflictError("User already exists", status_code=409)
    user = UserSchema(
        name=payload.name,
        email=payload.email,
        address=payload.address,
        password_hash=hash_password(payload.password),
        role="user",
    )
    try:
        doc = create_document(db, "user", user)
    except DuplicateKeyError:
        raise ConflictError("User already exists", status_code=409)
    logger.info(f"Registered user {doc['_id']}")
    return TokenResponse(token=token_for(doc), user=sanitize(doc))


@router.post("/login", response_model=TokenResponse)
def login(payload: LoginRequest, db=Depends(get_db)):
    user = db["user"].find_one({"email": payload.email})
    if not user or not verify_password(payload.password, user.get("password_hash", "")):
        logger.warning(f"Failed login for {payload.email}")
        raise AuthenticationError("Invalid credentials")
    if not user.get("is_active", True):
        raise AuthenticationError("Account is deactivated")
    now = utcnow()
    db["user"].update_one({"_id": user["_id"]}, {"$set": {"last_login": now}})
    user["last_login"] = now
    return TokenResponse(token=token_for(user), user=sanitize(user))


@router.get("/me")
def me(current_user=Depends(get_current_user)):
    return current_user


@router.put("/password")
def update_password(payload: UpdatePasswordRequest, current_user=Depends(get_current_user), db=Depends(get_db)):
    user = db["user"].find_one({"_id": to_obj_id(current_user["id"])})
    if not user:
        raise NotFoundError("User not found")
    if not verify_password(payload.current_password, user.get("password_hash", "")):
        raise ValidationError(
            "Current password is incorrect",
            errors=[{"field": "currentPassword", "message": "Current password is incorrect"}],
        )
    db["user"].update_one(
        {"_id": user["_id"]},
        {"$set": {"password_hash": hash_password(payload.new_password), "updated_at": utcnow()}},
    )
    logger.info(f"Password updated for user {user['_id']}")
    return {"message": "Password updated successfully"}
