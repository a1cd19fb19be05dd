"""
🔌 Database Connection Setup - MongoDB

Configuración centralizada para conectar a MongoDB.
Colecciones:
- scores: ledger append-only de todas las submissions aceptadas
- rankings: top-N cacheado por chart (_id = chartId)
"""

import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from app.core.config import get_settings

logger = logging.getLogger(__name__)


class Database:
    """Singleton para la conexión a MongoDB"""

    client: Optional[AsyncIOMotorClient] = None
    db: Optional[AsyncIOMotorDatabase] = None

    @classmethod
    async def connect(cls):
        """Conecta a MongoDB"""
        if cls.client is None:
            settings = get_settings()

            cls.client = AsyncIOMotorClient(
                settings.mongodb_uri,
                maxPoolSize=10,
                minPoolSize=2,
            )
            cls.db = cls.client[settings.mongodb_db_name]

            # Test de conexión
            await cls.client.admin.command("ping")
            logger.info(f"✅ Connected to MongoDB: {settings.mongodb_db_name}")

    @classmethod
    async def disconnect(cls):
        """Cierra la conexión"""
        if cls.client is not None:
            cls.client.close()
            cls.client = None
            cls.db = None
            logger.info("❌ Disconnected from MongoDB")

    @classmethod
    def get_db(cls) -> AsyncIOMotorDatabase:
        """Retorna la instancia de la base de datos"""
        if cls.db is None:
            raise RuntimeError("Database not connected. Call Database.connect() first.")
        return cls.db


# ============================================
# 🎯 DEPENDENCY para FastAPI
# ============================================

async def get_database() -> AsyncIOMotorDatabase:
    """
    FastAPI dependency para inyectar la DB

    Uso:
        @router.get("/scores")
        async def read_scores(db: Database):
            service = RankingService(db)
            return await service.get_top(chart_id)
    """
    return Database.get_db()


# ============================================
# 🏗️ CREAR ÍNDICES
# ============================================

async def create_indexes(db: AsyncIOMotorDatabase):
    """
    Crea los índices del ledger

    rankings no necesita índices extra: siempre se accede por _id.
    """
    await db.scores.create_index([("chart_id", 1), ("created_at", -1)])
    await db.scores.create_index("nickname")
    await db.scores.create_index("integrity_hash")

    logger.info("✅ Indexes created successfully")
