"""
Main FastAPI Application
Entry point for the travel desk backend
"""
import logging
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from datetime import datetime
from motor.motor_asyncio import AsyncIOMotorClient
from beanie import init_beanie

from travel_desk.config import settings
from travel_desk.models.request import TravelRequestDocument, RequestCounter
from travel_desk.models.user import UserDocument
from travel_desk.models.notification import NotificationDocument
from travel_desk.services.seed import seed_default_users

# Import routers
from travel_desk.api.routes import auth, users, requests, stats, notifications

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting %s...", settings.APP_NAME)

    # Initialize MongoDB
    client = AsyncIOMotorClient(settings.MONGODB_URL)
    database = client[settings.MONGODB_DB_NAME]

    # Initialize Beanie with document models
    await init_beanie(
        database=database,
        document_models=[TravelRequestDocument, RequestCounter, UserDocument, NotificationDocument]
    )

    logger.info("Connected to MongoDB: %s", settings.MONGODB_DB_NAME)

    if settings.SEED_DEFAULT_USERS:
        created = await seed_default_users(auth.get_password_hash, settings.DEFAULT_USER_PASSWORD)
        if created:
            logger.info("Default users created (password: %s)", settings.DEFAULT_USER_PASSWORD)

    logger.info("Server running on %s:%s", settings.HOST, settings.PORT)

    yield

    # Shutdown
    logger.info("Shutting down...")
    client.close()


# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Corporate travel request approval and booking",
    lifespan=lifespan,
    docs_url="/api/docs",
    redoc_url="/api/redoc"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth.router, prefix="/api/auth", tags=["Authentication"])
app.include_router(users.router, prefix="/api/users", tags=["Users"])
app.include_router(requests.router, prefix="/api/requests", tags=["Travel Requests"])
app.include_router(stats.router, prefix="/api/stats", tags=["Stats"])
app.include_router(notifications.router, prefix="/api/notifications", tags=["Notifications"])


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "Corporate Travel Desk API",
        "version": settings.APP_VERSION,
        "docs": "/api/docs"
    }


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "timestamp": datetime.utcnow().isoformat()
    }


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )
