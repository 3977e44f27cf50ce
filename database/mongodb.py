import os
from threading import Lock
from typing import Optional

from dotenv import load_dotenv
from pymongo import ASCENDING, MongoClient
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import ConfigurationError, ConnectionFailure

from logging_config import logger

load_dotenv()

SUBMISSIONS = "submissions"
ASSIGNMENTS = "assignments"
USERS = "users"


class MongoDBConfig:
    @classmethod
    def get_uri(cls) -> str:
        uri = os.getenv("MONGODB_CONNECTION_STRING")
        if not uri:
            raise ValueError(
                "MONGODB_CONNECTION_STRING environment variable is not set. "
                "Cannot connect to MongoDB."
            )
        return uri

    @classmethod
    def get_database_name(cls) -> str:
        return os.getenv("MONGODB_DATABASE", "assignment_grader")

    @classmethod
    def get_client_kwargs(cls) -> dict:
        return {
            "connectTimeoutMS": 15000,
            "serverSelectionTimeoutMS": 10000,
            "socketTimeoutMS": 20000,
            "retryWrites": True,
            "retryReads": True,
            "tz_aware": True,
        }


class MongoDBConnection:
    _client: Optional[MongoClient] = None
    _db: Optional[Database] = None
    _lock = Lock()  # protects initialization

    @classmethod
    def _initialize(cls) -> None:
        if cls._client is not None:
            return

        with cls._lock:
            if cls._client is not None:  # double-checked locking
                return

            logger.info("Initializing MongoDB connection...")

            uri = MongoDBConfig.get_uri()
            db_name = MongoDBConfig.get_database_name()
            kwargs = MongoDBConfig.get_client_kwargs()

            def _try_connect(test_uri: str):
                c = MongoClient(test_uri, **kwargs)
                c.admin.command("ping")
                return c

            try:
                cls._client = _try_connect(uri)
                cls._db = cls._client.get_database(db_name)
                logger.info(f"MongoDB connection established → {db_name}")
            except (ConfigurationError, ConnectionFailure) as e:
                logger.warning("Primary MongoDB connection failed", exc_info=True)

                # Fallback for networks that block SRV DNS lookups
                std_uri = os.getenv("MONGODB_STANDARD_URI") or os.getenv("MONGODB_DIRECT_URI")
                if std_uri:
                    try:
                        logger.info("Attempting non-SRV MongoDB URI from environment variable")
                        cls._client = _try_connect(std_uri)
                        cls._db = cls._client.get_database(db_name)
                        logger.info("MongoDB connected via non-SRV URI")
                    except Exception:
                        logger.error("Non-SRV URI attempt failed", exc_info=True)
                        cls._client = None
                        cls._db = None

                if cls._client is None:
                    msg = (
                        f"MongoDB connection failed: {e}. "
                        "If your network blocks SRV DNS queries, set MONGODB_STANDARD_URI to a mongodb:// URI with host:port list and retry."
                    )
                    logger.error(msg)
                    raise ConnectionError(msg) from e

            cls._ensure_indexes()

    @classmethod
    def _ensure_indexes(cls) -> None:
        try:
            cls._db[SUBMISSIONS].create_index([("assignment_id", ASCENDING)])
        except Exception:
            logger.warning("Could not create submissions index", exc_info=True)

    @classmethod
    def get_db(cls) -> Database:
        cls._initialize()
        if cls._db is None:
            raise RuntimeError("MongoDB database not initialized")
        return cls._db

    @classmethod
    def get_collection(cls, name: str = SUBMISSIONS) -> Collection:
        return cls.get_db()[name]

    @classmethod
    def close(cls) -> None:
        if cls._client:
            try:
                cls._client.close()
                logger.info("MongoDB connection closed")
            except Exception as e:
                logger.warning(f"Error while closing MongoDB connection: {e}")
            finally:
                cls._client = None
                cls._db = None


# Convenience exports
get_collection = MongoDBConnection.get_collection
close = MongoDBConnection.close
