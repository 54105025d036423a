# FILE: backend/lumendocs/core/db.py
# Connection helpers. Nothing connects at import time; the context builder
# calls these once per process.

import logging
from typing import Tuple
from urllib.parse import urlparse

import pymongo
import redis
from pymongo.database import Database
from pymongo.errors import ConnectionFailure
from pymongo.mongo_client import MongoClient

from .config import Settings

logger = logging.getLogger(__name__)


def connect_to_mongo(settings: Settings) -> Tuple[MongoClient, Database]:
    logger.info("--- [DB] Attempting to connect to MongoDB... ---")
    try:
        client: MongoClient = pymongo.MongoClient(
            settings.DATABASE_URI,
            serverSelectionTimeoutMS=settings.MONGO_TIMEOUT_MS,
            connectTimeoutMS=settings.MONGO_TIMEOUT_MS,
            socketTimeoutMS=settings.MONGO_TIMEOUT_MS * 2,
            tz_aware=True,
        )
        client.admin.command('ping')
        db_name = urlparse(settings.DATABASE_URI).path.lstrip('/')
        if not db_name:
            raise ValueError("Database name not found in DATABASE_URI.")
        db: Database = client[db_name]
        logger.info(f"--- [DB] Connected to MongoDB: '{db_name}' ---")
        return client, db
    except (ConnectionFailure, ValueError) as e:
        logger.critical(f"--- [DB] Could not connect to MongoDB: {e} ---")
        raise


def connect_to_redis(settings: Settings) -> redis.Redis:
    logger.info("--- [DB] Attempting to connect to Redis... ---")
    try:
        client = redis.from_url(settings.REDIS_URL, decode_responses=True, socket_timeout=5, socket_connect_timeout=5)
        client.ping()
        logger.info("--- [DB] Connected to Redis. ---")
        return client
    except redis.ConnectionError as e:
        logger.critical(f"--- [DB] Could not connect to Redis: {e} ---")
        raise
