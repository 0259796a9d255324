"""Firestore REST 클라이언트 - export only."""

from .client import FirestoreClient, FirestoreDocument
from .query import Query
from .values import SERVER_TIMESTAMP, decode_fields, decode_value, encode_fields, encode_value

__all__ = [
    "FirestoreClient",
    "FirestoreDocument",
    "Query",
    "SERVER_TIMESTAMP",
    "encode_value",
    "decode_value",
    "encode_fields",
    "decode_fields",
]
