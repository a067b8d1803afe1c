from .memory import MemoryStore
from .json_file import JsonFileStore
from .mongo_store import MongoKeyValueStore

__all__ = ["MemoryStore", "JsonFileStore", "MongoKeyValueStore"]
