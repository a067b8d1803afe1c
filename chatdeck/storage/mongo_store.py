from __future__ import annotations
from typing import Any, Optional
from datetime import datetime, timezone

from pymongo import MongoClient, ASCENDING

from chatdeck.store_protocol import KeyValueStore


class MongoKeyValueStore(KeyValueStore):
    """
    Store clave/valor sobre una colección de Mongo (cliente síncrono).
    `scope` aísla los datos de un perfil: equivale al localStorage de un navegador.
    """
    def __init__(
        self,
        uri: str = "mongodb://localhost:27017",
        db_name: str = "chatdeck",
        collection: str = "kv_store",
        scope: str = "default",
        client: Optional[Any] = None,
    ):
        self.client = client if client is not None else MongoClient(uri)
        self.db = self.client[db_name]
        self.col = self.db[collection]
        self.scope = scope

    # ---------- Setup ----------
    def ensure_indexes(self) -> None:
        self.col.create_index([("scope", ASCENDING), ("key", ASCENDING)], unique=True)

    # ---------- Helpers ----------
    @staticmethod
    def _utcnow() -> datetime:
        return datetime.now(timezone.utc)

    def _filter(self, key: str) -> dict:
        return {"scope": self.scope, "key": key}

    # ---------- Store API ----------
    def get(self, key: str) -> Optional[str]:
        doc = self.col.find_one(self._filter(key))
        if not doc:
            return None
        return doc.get("value")

    def set(self, key: str, value: str) -> None:
        now = self._utcnow()
        self.col.update_one(
            self._filter(key),
            {
                "$set": {"value": value, "updated_at": now},
                "$setOnInsert": {"created_at": now},
            },
            upsert=True,
        )

    def remove(self, key: str) -> None:
        self.col.delete_one(self._filter(key))
