import asyncio
import logging
from motor.motor_asyncio import AsyncIOMotorClient
from beanie import init_beanie

from travel_desk.config import settings
from travel_desk.models.user import UserDocument
from travel_desk.api.routes.auth import get_password_hash
from travel_desk.services.seed import seed_default_users


async def seed_users():
    print("🚀 Connecting to MongoDB...")
    client = AsyncIOMotorClient(settings.MONGODB_URL)
    database = client[settings.MONGODB_DB_NAME]

    await init_beanie(
        database=database,
        document_models=[UserDocument]
    )

    created = await seed_default_users(get_password_hash, settings.DEFAULT_USER_PASSWORD)
    if created:
        print(f"✅ Created {created} default users (password: {settings.DEFAULT_USER_PASSWORD})")
    else:
        print("ℹ️ Users already exist, nothing to seed.")

    client.close()

if __name__ == "__main__":
    logging.basicConfig(level=settings.LOG_LEVEL)
    asyncio.run(seed_users())
