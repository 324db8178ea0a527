"""
In-memory stand-in for the Rating Voyage API.

`MockApi` owns its dataset; build one per run or test and call `reset()` to
return to the initial fixtures. `MockApi.session()` gives a `requests` session
that routes ``mock://`` URLs to it, so `RatingVoyageClient` works unchanged:

    api = MockApi()
    client = RatingVoyageClient(base_url=MOCK_BASE_URL, session=api.session())
"""

import copy
import json
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlsplit

import requests
from requests.adapters import BaseAdapter

from logger import setup_logger

logger = setup_logger("mock_api")

MOCK_BASE_URL = "mock://rating-voyage/api"

INITIAL_USERS = [
    {"id": "1", "name": "John Doe", "email": "john@example.com", "address": "123 Main St, City",
     "role": "admin", "isActive": True, "lastLogin": "2024-01-15T10:30:00Z",
     "createdAt": "2023-01-01T00:00:00Z", "updatedAt": "2024-01-15T10:30:00Z"},
    {"id": "2", "name": "Jane Smith", "email": "jane@example.com", "address": "456 Oak Ave, Town",
     "role": "user", "isActive": True, "lastLogin": "2024-01-14T15:45:00Z",
     "createdAt": "2023-02-15T00:00:00Z", "updatedAt": "2024-01-14T15:45:00Z"},
    {"id": "3", "name": "Bob Johnson", "email": "bob@example.com", "address": "789 Pine Rd, Village",
     "role": "store-owner", "storeId": "store-1", "isActive": True, "lastLogin": "2024-01-13T09:15:00Z",
     "createdAt": "2023-03-20T00:00:00Z", "updatedAt": "2024-01-13T09:15:00Z"},
    {"id": "4", "name": "Alice Brown", "email": "alice@example.com", "address": "321 Elm St, Hamlet",
     "role": "store-owner", "storeId": "store-2", "isActive": False, "lastLogin": "2023-12-01T14:20:00Z",
     "createdAt": "2023-04-10T00:00:00Z", "updatedAt": "2023-12-01T14:20:00Z"},
]

INITIAL_STORES = [
    {"id": "store-1", "name": "Pine Road Bakery", "email": "bakery@example.com", "address": "789 Pine Rd, Village",
     "category": "restaurant", "averageRating": 4.5, "totalRatings": 2, "isActive": True,
     "owner": {"id": "3", "name": "Bob Johnson", "email": "bob@example.com"}},
    {"id": "store-2", "name": "Elm Street Books", "email": "books@example.com", "address": "321 Elm St, Hamlet",
     "category": "retail", "averageRating": 0, "totalRatings": 0, "isActive": True,
     "owner": {"id": "4", "name": "Alice Brown", "email": "alice@example.com"}},
]

ITEM_RE = re.compile(r"^/(users|stores)/([^/]+)$")


def now_iso() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class MockApi:
    def __init__(self):
        self.users: List[Dict[str, Any]] = []
        self.stores: List[Dict[str, Any]] = []
        self.calls: List[Tuple[str, str]] = []
        self.reset()

    def reset(self) -> None:
        self.users = copy.deepcopy(INITIAL_USERS)
        self.stores = copy.deepcopy(INITIAL_STORES)
        self.calls = []
        self._next_id = len(self.users) + 1

    def session(self) -> requests.Session:
        s = requests.Session()
        s.mount("mock://", MockApiAdapter(self))
        return s

    def handle(self, method: str, path: str, body: Optional[Dict[str, Any]] = None) -> Tuple[int, Any]:
        self.calls.append((method, path))

        if path == "/users":
            if method == "GET":
                return 200, self._page("users", self.users)
            if method == "POST":
                return 201, self._create_user(body or {})
        elif path == "/stores" and method == "GET":
            active = [s for s in self.stores if s.get("isActive", True)]
            return 200, self._page("stores", active)

        match = ITEM_RE.match(path)
        if match:
            resource, item_id = match.groups()
            items = self.users if resource == "users" else self.stores
            item = next((i for i in items if i["id"] == item_id), None)
            label = "User" if resource == "users" else "Store"
            if item is None:
                return 404, {"message": f"{label} not found"}
            if method == "GET":
                return 200, item
            if method == "DELETE":
                items.remove(item)
                return 200, {"message": f"{label} {item['name']} deleted successfully"}

        return 404, {"message": f"Mock API endpoint not found: {method} {path}"}

    def _page(self, key: str, items: List[Dict[str, Any]]) -> Dict[str, Any]:
        return {key: copy.deepcopy(items), "total": len(items), "totalPages": 1, "currentPage": 1}

    def _create_user(self, data: Dict[str, Any]) -> Dict[str, Any]:
        user = {
            "id": str(self._next_id),
            "name": data.get("name"),
            "email": data.get("email"),
            "address": data.get("address"),
            "role": data.get("role", "user"),
            "isActive": True,
            "lastLogin": None,
            "createdAt": now_iso(),
            "updatedAt": now_iso(),
        }
        if data.get("storeId"):
            user["storeId"] = data["storeId"]
        self._next_id += 1
        self.users.append(user)
        return user


class MockApiAdapter(BaseAdapter):
    """Transport adapter answering requests from a `MockApi`."""

    def __init__(self, api: MockApi):
        super().__init__()
        self.api = api

    def send(self, request, **kwargs):
        path = urlsplit(request.url).path
        if path.startswith("/api"):
            path = path[len("/api"):]
        body = json.loads(request.body) if request.body else None
        status, payload = self.api.handle(request.method, path, body)
        logger.debug(f"{request.method} {path} -> {status}")

        response = requests.Response()
        response.status_code = status
        response.headers["Content-Type"] = "application/json"
        response._content = json.dumps(payload).encode("utf-8")
        response.encoding = "utf-8"
        response.url = request.url
        response.request = request
        return response

    def close(self):
        pass
