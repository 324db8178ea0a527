from typing import Any, Dict, Optional

from errors import AuthorizationError


def is_admin(user: Dict[str, Any]) -> bool:
    return user.get("role") == "admin"


def can_modify(user: Dict[str, Any], owner_id: Optional[str]) -> bool:
    """Ownership rule: the caller owns the resource or is an admin."""
    if is_admin(user):
        return True
    return owner_id is not None and str(owner_id) == str(user.get("id"))


def ensure_can_modify(user: Dict[str, Any], owner_id: Optional[str], action: str = "modify this resource") -> None:
    if not can_modify(user, owner_id):
        raise AuthorizationError(f"Not authorized to {action}")
