# query.py
"""
Filter and sort rules for listing establishments.

The rules are resolved here into backend-neutral conditions so that the
SQLite storage and the hosted document store apply exactly the same
semantics. Ratings are strings, and range conditions compare them as
strings in whichever store runs the query.
"""
from dataclasses import dataclass
from typing import List, Optional, Tuple

ALL_CATEGORIES = "All categories"
ALL_LOCATIONS = "All locations"
ALL_RATINGS = "All ratings"

# bucket label -> (operator, rating value)
RATING_BUCKETS = {
    "5 stars": ("==", "5"),
    "4+ stars": (">=", "4"),
    "3+ stars": (">=", "3"),
}

DEFAULT_SORT = "createdAt"

# sort label -> (field, descending)
SORT_ORDERS = {
    "Newest first": ("created_at", True),
    "createdAt": ("created_at", True),
    "Highest rated": ("rating", True),
    "Name A-Z": ("name", False),
    "Name Z-A": ("name", True),
}


@dataclass
class EstablishmentFilters:
    category: Optional[str] = None
    location: Optional[str] = None
    rating: Optional[str] = None


@dataclass(frozen=True)
class Condition:
    field: str
    op: str
    value: str


def resolve_conditions(filters: Optional[EstablishmentFilters]) -> List[Condition]:
    """Turn optional filters into AND-ed conditions; sentinels and unknown buckets add nothing."""
    conditions: List[Condition] = []
    if filters is None:
        return conditions

    if filters.category and filters.category != ALL_CATEGORIES:
        conditions.append(Condition("category", "==", filters.category))

    if filters.location and filters.location != ALL_LOCATIONS:
        conditions.append(Condition("location", "==", filters.location))

    if filters.rating and filters.rating != ALL_RATINGS:
        bucket = RATING_BUCKETS.get(filters.rating)
        if bucket:
            op, value = bucket
            conditions.append(Condition("rating", op, value))

    return conditions


def resolve_sort(sort_by: Optional[str]) -> Optional[Tuple[str, bool]]:
    """Return (field, descending), or None when the label asks for no particular order."""
    if sort_by is None:
        sort_by = DEFAULT_SORT
    return SORT_ORDERS.get(sort_by)
