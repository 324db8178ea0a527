"""
Python client for the Rating Voyage API.

Mirrors the dashboard's data layer: reads go through a `QueryCache` keyed by
resource type, and every successful mutation invalidates the resources it may
have changed. Nothing is updated optimistically; callers see new server state
on the next read after invalidation.
"""

from typing import Any, Callable, Dict, Hashable, List, Optional, Tuple

import requests

from logger import setup_logger

logger = setup_logger("client")

API_BASE_URL = "http://localhost:5000/api"

# Resources touched by each kind of mutation
USER_RESOURCES = ("users", "user")
STORE_RESOURCES = ("stores", "store")
RATING_RESOURCES = ("stores", "store", "store-ratings", "user-ratings")

MENU_ITEMS = {
    "admin": [
        {"title": "Dashboard", "url": "/dashboard"},
        {"title": "Manage Users", "url": "/users"},
        {"title": "Manage Stores", "url": "/stores"},
        {"title": "Add User", "url": "/add-user"},
        {"title": "Analytics", "url": "/analytics"},
    ],
    "user": [
        {"title": "Browse Stores", "url": "/browse"},
        {"title": "My Ratings", "url": "/my-ratings"},
        {"title": "Profile", "url": "/profile"},
    ],
    "store-owner": [
        {"title": "My Dashboard", "url": "/store-dashboard"},
        {"title": "Store Ratings", "url": "/store-ratings"},
        {"title": "Profile", "url": "/profile"},
    ],
}


def menu_for(role: str) -> List[Dict[str, str]]:
    return list(MENU_ITEMS.get(role, []))


class ApiClientError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None, errors: Optional[list] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.errors = errors or []


CacheKey = Tuple[Hashable, ...]


class QueryCache:
    """Fetched results keyed by ``(resource, *params)``."""

    def __init__(self):
        self._entries: Dict[CacheKey, Any] = {}

    def __contains__(self, key: CacheKey) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def fetch(self, key: CacheKey, loader: Callable[[], Any]) -> Any:
        if key not in self._entries:
            self._entries[key] = loader()
        return self._entries[key]

    def invalidate(self, *resources: str) -> None:
        stale = [k for k in self._entries if k[0] in resources]
        for key in stale:
            del self._entries[key]
        if stale:
            logger.debug(f"Invalidated {len(stale)} cached queries for {resources}")

    def clear(self) -> None:
        self._entries.clear()


def params_key(params: Dict[str, Any]) -> Tuple:
    return tuple(sorted((k, v) for k, v in params.items() if v is not None))


class RatingVoyageClient:
    def __init__(self, base_url: str = API_BASE_URL, token: Optional[str] = None, session=None,
                 cache: Optional[QueryCache] = None):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.session = session or requests.Session()
        self.cache = cache or QueryCache()
        self.user: Optional[Dict[str, Any]] = None

    def _request(self, method: str, path: str, json: Any = None, params: Optional[Dict[str, Any]] = None) -> Any:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        if params:
            params = {k: v for k, v in params.items() if v is not None}
        response = self.session.request(method, f"{self.base_url}{path}", json=json, params=params, headers=headers)
        if response.status_code >= 400:
            try:
                body = response.json()
            except ValueError:
                body = {}
            message = body.get("message") or f"API error: {response.status_code}"
            logger.warning(f"{method} {path} failed with {response.status_code}: {message}")
            raise ApiClientError(message, response.status_code, body.get("errors"))
        return response.json()

    def _mutate(self, method: str, path: str, invalidates: Tuple[str, ...], json: Any = None) -> Any:
        result = self._request(method, path, json=json)
        self.cache.invalidate(*invalidates)
        return result

    # Auth
    def login(self, email: str, password: str) -> Dict[str, Any]:
        result = self._request("POST", "/auth/login", json={"email": email, "password": password})
        self.token = result["token"]
        self.user = result["user"]
        self.cache.clear()
        return self.user

    def register(self, name: str, email: str, address: str, password: str) -> Dict[str, Any]:
        result = self._request("POST", "/auth/register", json={
            "name": name, "email": email, "address": address, "password": password,
        })
        self.token = result["token"]
        self.user = result["user"]
        self.cache.clear()
        return self.user

    def logout(self) -> None:
        self.token = None
        self.user = None
        self.cache.clear()

    def me(self) -> Dict[str, Any]:
        return self._request("GET", "/auth/me")

    def update_password(self, current_password: str, new_password: str) -> Dict[str, Any]:
        return self._request("PUT", "/auth/password", json={
            "currentPassword": current_password, "newPassword": new_password,
        })

    def menu(self) -> List[Dict[str, str]]:
        return menu_for(self.user["role"]) if self.user else []

    # Users
    def get_users(self, **params) -> List[Dict[str, Any]]:
        return self.cache.fetch(
            ("users", params_key(params)),
            lambda: self._request("GET", "/users", params=params).get("users", []),
        )

    def get_user(self, user_id: str) -> Dict[str, Any]:
        return self.cache.fetch(("user", user_id), lambda: self._request("GET", f"/users/{user_id}"))

    def create_user(self, **data) -> Dict[str, Any]:
        return self._mutate("POST", "/users", USER_RESOURCES, json=data)

    def update_user(self, user_id: str, **data) -> Dict[str, Any]:
        return self._mutate("PUT", f"/users/{user_id}", USER_RESOURCES, json=data)

    def delete_user(self, user_id: str) -> Dict[str, Any]:
        return self._mutate("DELETE", f"/users/{user_id}", USER_RESOURCES)

    # Stores
    def get_stores(self, **params) -> List[Dict[str, Any]]:
        return self.cache.fetch(
            ("stores", params_key(params)),
            lambda: self._request("GET", "/stores", params=params).get("stores", []),
        )

    def get_store(self, store_id: str) -> Dict[str, Any]:
        return self.cache.fetch(("store", store_id), lambda: self._request("GET", f"/stores/{store_id}"))

    def get_my_stores(self) -> List[Dict[str, Any]]:
        return self.cache.fetch(("stores", "mine"), lambda: self._request("GET", "/stores/my-stores"))

    def create_store(self, **data) -> Dict[str, Any]:
        return self._mutate("POST", "/stores", STORE_RESOURCES, json=data)["store"]

    def update_store(self, store_id: str, **data) -> Dict[str, Any]:
        return self._mutate("PUT", f"/stores/{store_id}", STORE_RESOURCES, json=data)["store"]

    def delete_store(self, store_id: str) -> Dict[str, Any]:
        # The owner's storeId is cleared server side as well
        return self._mutate("DELETE", f"/stores/{store_id}", STORE_RESOURCES + USER_RESOURCES)

    # Ratings
    def get_store_ratings(self, store_id: str, **params) -> List[Dict[str, Any]]:
        return self.cache.fetch(
            ("store-ratings", store_id, params_key(params)),
            lambda: self._request("GET", "/ratings", params={"store": store_id, **params}).get("ratings", []),
        )

    def get_my_ratings(self) -> List[Dict[str, Any]]:
        return self.cache.fetch(("user-ratings",), lambda: self._request("GET", "/ratings/my-ratings"))

    def submit_rating(self, store_id: str, rating: int, review: Optional[str] = None,
                      images: Optional[List[str]] = None) -> Dict[str, Any]:
        body = {"store": store_id, "rating": rating}
        if review is not None:
            body["review"] = review
        if images:
            body["images"] = images
        return self._mutate("POST", "/ratings", RATING_RESOURCES, json=body)["rating"]

    def update_rating(self, rating_id: str, **data) -> Dict[str, Any]:
        return self._mutate("PUT", f"/ratings/{rating_id}", RATING_RESOURCES, json=data)["rating"]

    def delete_rating(self, rating_id: str) -> Dict[str, Any]:
        return self._mutate("DELETE", f"/ratings/{rating_id}", RATING_RESOURCES)

    def mark_helpful(self, rating_id: str) -> int:
        result = self._mutate("POST", f"/ratings/{rating_id}/helpful", ("store-ratings", "user-ratings"))
        return result["helpfulVotes"]

    # Dashboard
    def get_stats(self) -> Dict[str, Any]:
        return self._request("GET", "/dashboard/stats")

    def get_user_stats(self) -> Dict[str, Any]:
        return self._request("GET", "/dashboard/user-stats")

    def get_store_stats(self, store_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/dashboard/store-stats/{store_id}")

    def get_top_rated_stores(self, limit: int = 10) -> List[Dict[str, Any]]:
        return self._request("GET", "/dashboard/top-rated-stores", params={"limit": limit})
