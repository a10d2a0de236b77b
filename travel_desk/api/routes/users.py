"""
User Routes
User management endpoints
"""
import logging
from fastapi import APIRouter, HTTPException, Depends, status
from typing import List, Optional

from travel_desk.models.user import (
    UserCreate,
    UserDocument,
    UserResponse,
    UserRole,
    UserStatus,
    UserUpdate,
)
from travel_desk.api.routes.auth import get_current_user, get_password_hash

logger = logging.getLogger(__name__)

router = APIRouter()

ADMIN_ROLES = (UserRole.ADMIN, UserRole.SUPER_ADMIN)


def require_admin(current_user: UserDocument = Depends(get_current_user)) -> UserDocument:
    if current_user.role not in ADMIN_ROLES:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only admins can manage users"
        )
    return current_user


async def _get_user_or_404(user_id: str) -> UserDocument:
    user = await UserDocument.find_one(UserDocument.user_id == user_id)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )
    return user


@router.get("/", response_model=List[UserResponse])
async def get_users(
    role: Optional[UserRole] = None,
    user_status: Optional[UserStatus] = None,
    current_user: UserDocument = Depends(require_admin)
):
    """
    List users, optionally filtered by role and status (Admin only)
    """
    query = {}
    if role:
        query["role"] = role
    if user_status:
        query["status"] = user_status
    return await UserDocument.find(query).sort("name").to_list()


@router.post("/", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    user_data: UserCreate,
    current_user: UserDocument = Depends(require_admin)
):
    """
    Create a new user (Admin only)
    """
    email = user_data.email.lower()
    existing = await UserDocument.find_one(UserDocument.email == email)
    if existing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered"
        )

    if user_data.role == UserRole.SUPER_ADMIN and current_user.role != UserRole.SUPER_ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only a super admin can create another super admin"
        )

    user = UserDocument(
        **user_data.model_dump(exclude={"password", "email"}),
        email=email,
        password_hash=get_password_hash(user_data.password),
    )
    await user.insert()
    logger.info("User %s (%s) created by %s", user.user_id, user.role.value, current_user.user_id)
    return user


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: str,
    current_user: UserDocument = Depends(get_current_user)
):
    """
    Get a user; everyone may read their own profile
    """
    if current_user.user_id != user_id and current_user.role not in ADMIN_ROLES:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized to view this user"
        )
    return await _get_user_or_404(user_id)


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: str,
    user_data: UserUpdate,
    current_user: UserDocument = Depends(get_current_user)
):
    """
    Update a user. Users may edit their own name, email, password and avatar;
    role, department and status changes need an admin.
    """
    is_admin = current_user.role in ADMIN_ROLES
    if current_user.user_id != user_id and not is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized to update this user"
        )

    user = await _get_user_or_404(user_id)
    update_data = user_data.model_dump(exclude_unset=True)

    if not is_admin and {"role", "department", "status"} & update_data.keys():
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only admins can change role, department or status"
        )

    if "email" in update_data and update_data["email"] is not None:
        email = update_data["email"].lower()
        existing = await UserDocument.find_one(UserDocument.email == email)
        if existing and existing.user_id != user_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Email already registered"
            )
        update_data["email"] = email

    password = update_data.pop("password", None)
    if password:
        user.password_hash = get_password_hash(password)

    for field, value in update_data.items():
        if value is not None:
            setattr(user, field, value)

    await user.save()
    return user


@router.delete("/{user_id}")
async def delete_user(
    user_id: str,
    current_user: UserDocument = Depends(require_admin)
):
    """
    Delete a user (Admin only)
    """
    if user_id == current_user.user_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot delete your own account"
        )

    user = await _get_user_or_404(user_id)
    await user.delete()
    logger.info("User %s deleted by %s", user_id, current_user.user_id)
    return {"message": "User deleted successfully"}
