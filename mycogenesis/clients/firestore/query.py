"""Firestore structuredQuery 빌더 (불변)

    Query("blogs").where("status", "==", "published").order_by("publishedAt", "desc").limit(10)
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Optional

from .values import encode_value

OPERATORS = {
    "==": "EQUAL",
    "!=": "NOT_EQUAL",
    "<": "LESS_THAN",
    "<=": "LESS_THAN_OR_EQUAL",
    ">": "GREATER_THAN",
    ">=": "GREATER_THAN_OR_EQUAL",
    "array-contains": "ARRAY_CONTAINS",
    "array-contains-any": "ARRAY_CONTAINS_ANY",
    "in": "IN",
    "not-in": "NOT_IN",
}

DIRECTIONS = {"asc": "ASCENDING", "desc": "DESCENDING"}


@dataclass(frozen=True)
class FieldFilter:
    field_path: str
    op: str
    value: Any

    def to_dict(self) -> dict[str, Any]:
        return {
            "fieldFilter": {
                "field": {"fieldPath": self.field_path},
                "op": OPERATORS[self.op],
                "value": encode_value(self.value),
            }
        }


@dataclass(frozen=True)
class Query:
    collection: str
    filters: tuple[FieldFilter, ...] = field(default_factory=tuple)
    orders: tuple[tuple[str, str], ...] = field(default_factory=tuple)
    limit_count: Optional[int] = None

    def where(self, field_path: str, op: str, value: Any) -> "Query":
        if op not in OPERATORS:
            raise ValueError(f"Unsupported operator: {op}")
        return replace(self, filters=self.filters + (FieldFilter(field_path, op, value),))

    def order_by(self, field_path: str, direction: str = "asc") -> "Query":
        direction = direction.lower()
        if direction not in DIRECTIONS:
            raise ValueError(f"Unsupported order direction: {direction}")
        return replace(self, orders=self.orders + ((field_path, direction),))

    def limit(self, count: int) -> "Query":
        if count <= 0:
            raise ValueError("limit must be positive")
        return replace(self, limit_count=count)

    def to_structured_query(self) -> dict[str, Any]:
        query: dict[str, Any] = {"from": [{"collectionId": self.collection}]}

        if len(self.filters) == 1:
            query["where"] = self.filters[0].to_dict()
        elif self.filters:
            query["where"] = {
                "compositeFilter": {
                    "op": "AND",
                    "filters": [f.to_dict() for f in self.filters],
                }
            }

        if self.orders:
            query["orderBy"] = [
                {"field": {"fieldPath": path}, "direction": DIRECTIONS[direction]}
                for path, direction in self.orders
            ]

        if self.limit_count is not None:
            query["limit"] = self.limit_count

        return query
