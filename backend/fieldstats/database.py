"""
backend/fieldstats/database.py

Purpose:
    MongoDB connection bootstrap and read-path index management for the
    collections served by the statistics API.

Dependencies:
    - motor.motor_asyncio
    - pymongo
    - fieldstats.config
"""

import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import OperationFailure

from fieldstats.config import settings

client: AsyncIOMotorClient = None
db: AsyncIOMotorDatabase = None

logger = logging.getLogger("fieldstats.database")


async def connect_db() -> None:
    global client, db
    client = AsyncIOMotorClient(
        settings.MONGO_URI,
        maxPoolSize=25,
        minPoolSize=5,
    )
    db = client[settings.MONGO_DB]
    await _ensure_indexes()


async def close_db() -> None:
    global client
    if client:
        client.close()


async def get_db() -> AsyncIOMotorDatabase:
    return db


async def _ensure_indexes() -> None:
    """Create indexes on startup. Idempotent."""
    try:
        # ---- Matches (list views, filters, priority sort) ----
        await db.matches.create_index([("starting_at", 1)])
        await db.matches.create_index([("league_id", 1), ("starting_at", 1)])
        await db.matches.create_index([("state.state", 1), ("starting_at", 1)])
        await db.matches.create_index("participants.id")
        await db.matches.create_index("participants.name")

        # ---- Leagues (priority cache bulk read) ----
        await db.leagues.create_index("featured")

        # ---- League standings (one document per league) ----
        await db.leaguesstandings.create_index("leagueId")
    except OperationFailure as exc:
        logger.warning("Index creation skipped: %s", exc)
