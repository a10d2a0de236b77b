"""
Default Users
One account per role, created when the users collection is empty
"""
import logging
from typing import Callable, List

from travel_desk.models.user import UserDocument, UserRole

logger = logging.getLogger(__name__)


DEFAULT_USERS = [
    {"name": "Alex Morgan", "email": "employee@renee.com", "role": UserRole.EMPLOYEE,
     "department": "Product", "avatar": "https://picsum.photos/seed/alex/200"},
    {"name": "James Wilson", "email": "manager@renee.com", "role": UserRole.MANAGER,
     "department": "Sales", "avatar": "https://picsum.photos/seed/james/200"},
    {"name": "Sarah Jenkins", "email": "admin@renee.com", "role": UserRole.ADMIN,
     "department": "IT", "avatar": "https://picsum.photos/seed/sarah/200"},
    {"name": "Super Admin", "email": "super@renee.com", "role": UserRole.SUPER_ADMIN,
     "department": "Executive", "avatar": "https://picsum.photos/seed/super/200"},
    {"name": "Travel Desk", "email": "agent@renee.com", "role": UserRole.TRAVEL_AGENT,
     "department": "Operations", "avatar": "https://picsum.photos/seed/agent/200"},
]


def default_user_documents(password_hash: str) -> List[UserDocument]:
    return [UserDocument(**user, password_hash=password_hash) for user in DEFAULT_USERS]


async def seed_default_users(hash_password: Callable[[str], str], password: str) -> int:
    """Insert the default users if there are none; returns how many were created"""
    if await UserDocument.find_all().count() > 0:
        return 0

    users = default_user_documents(hash_password(password))
    await UserDocument.insert_many(users)
    logger.info("Seeded %d default users", len(users))
    return len(users)
