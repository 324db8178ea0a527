import math
import re
from typing import Any, Dict, Iterable, List, Optional, Tuple

from pymongo import ASCENDING, DESCENDING

from database import to_obj_id
from errors import ValidationError

CAMEL_RE = re.compile(r"(?<!^)(?=[A-Z])")


def to_snake(name: str) -> str:
    return CAMEL_RE.sub("_", name).lower()


def search_clause(search: Optional[str], fields: Iterable[str]) -> Dict[str, Any]:
    """Case-insensitive substring match of `search` over any of `fields`."""
    if not search:
        return {}
    pattern = re.escape(search.strip())
    return {"$or": [{f: {"$regex": pattern, "$options": "i"}} for f in fields]}


def sort_spec(sort_by: str, sort_order: str, allowed: Iterable[str]) -> List[Tuple[str, int]]:
    field = to_snake(sort_by)
    if field not in allowed:
        raise ValidationError(
            "Invalid sort field",
            errors=[{"field": "sortBy", "message": f"Cannot sort by '{sort_by}'"}],
        )
    direction = DESCENDING if sort_order == "desc" else ASCENDING
    # _id breaks ties so pages stay stable when the sort field repeats
    return [(field, direction), ("_id", direction)]


def paginate(collection, query: Dict[str, Any], sort: List[Tuple[str, int]], page: int, limit: int) -> Dict[str, Any]:
    docs = list(collection.find(query).sort(sort).skip((page - 1) * limit).limit(limit))
    total = collection.count_documents(query)
    return {
        "items": docs,
        "total": total,
        "totalPages": math.ceil(total / limit),
        "currentPage": page,
    }


def attach_refs(db, docs: List[Dict], id_field: str, collection: str, fields: Iterable[str], as_field: str) -> List[Dict]:
    """Embed a small summary of the referenced document under `as_field`.

    Missing or dangling references leave `as_field` set to None.
    """
    fields = list(fields)
    ids = {d[id_field] for d in docs if d.get(id_field)}
    projection = {f: 1 for f in fields}
    refs = {
        str(r["_id"]): r
        for r in db[collection].find({"_id": {"$in": [to_obj_id(i) for i in ids]}}, projection)
    } if ids else {}
    for d in docs:
        ref = refs.get(d.get(id_field))
        d[as_field] = {"id": str(ref["_id"]), **{f: ref.get(f) for f in fields}} if ref else None
    return docs
