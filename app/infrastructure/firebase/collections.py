"""Firestore collection names (schema-in-code).

Firestore has no DDL or migrations. Collections are created automatically
when you first write a document. Use these constants so collection names
stay consistent and act as the single source of truth for the "schema".

Example:
    from app.infrastructure.firebase.client import get_firestore_client
    from app.infrastructure.firebase.collections import COLLECTION_REPAIRS

    db = get_firestore_client()
    if db:
        await db.collection(COLLECTION_REPAIRS).add({...})
"""

COLLECTION_REPAIRS = "repairs"
COLLECTION_USERS = "users"

# Required composite index (firestore.indexes.json):
#   repairs: status ASC, createdAt DESC
#   repairs: submitterUid ASC, createdAt DESC
