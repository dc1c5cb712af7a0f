import logging
import os
from typing import Any
from pymongo import MongoClient
from pymongo.errors import ServerSelectionTimeoutError
from pymongo.server_api import ServerApi

logger = logging.getLogger(__name__)

_client: MongoClient | None = None

def connect(timeout_ms: int = 5000) -> Any:
    global _client
    uri = os.getenv("MONGO_URI")
    db_name = os.getenv("MONGO_DB")

    if not uri:
        raise RuntimeError("MONGO_URI environment variable is not set")
    if not db_name:
        raise RuntimeError("MONGO_DB environment variable is not set")

    if _client is None:
        # Atlas SRV URIs need TLS, local mongod usually runs without it
        use_tls = uri.startswith("mongodb+srv://") or os.getenv("MONGO_TLS", "").lower() in {"1", "true", "yes"}
        _client = MongoClient(
            uri,
            tls=use_tls,
            serverSelectionTimeoutMS=timeout_ms,
            server_api=ServerApi('1'),
            tz_aware=True,
        )
        try:
            _client.admin.command("ping")
        except ServerSelectionTimeoutError as exc:
            _client = None
            raise RuntimeError("Unable to connect to MongoDB") from exc
        logger.info("Connected to MongoDB database %s", db_name)

    return _client[db_name]
