"""
User administration endpoints (admin only).
"""

from fastapi import APIRouter, Depends, Query, Response, status

from accounts.models import Role
from api.auth import require_role
from api.config import config as api_config
from api.dependencies import ServiceContainer, get_services
from api.models import CreateUserRequest, UpdateUserRequest, UserEnvelope, UserListResponse, UserResponse
from utilities.errors import NotFound

router = APIRouter(
    prefix="/users",
    tags=["Users"],
    dependencies=[Depends(require_role(Role.ADMIN))],
)


@router.post("", response_model=UserEnvelope, status_code=status.HTTP_201_CREATED)
async def create_user(body: CreateUserRequest, services: ServiceContainer = Depends(get_services)):
    user = await services.store.create(body.model_dump())
    return UserEnvelope(message="User created successfully", user=UserResponse.from_public(user.public()))


@router.get("", response_model=UserListResponse)
async def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(api_config.default_page_size, ge=1, le=api_config.max_page_size),
    services: ServiceContainer = Depends(get_services),
):
    users = await services.store.list_users(page=page, limit=limit)
    if not users:
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    total = await services.store.count_users()
    return UserListResponse(
        users=[UserResponse.from_public(user.public()) for user in users],
        total=total,
        page=page,
        limit=limit,
    )


@router.get("/{user_id}", response_model=UserEnvelope)
async def get_user(user_id: str, services: ServiceContainer = Depends(get_services)):
    user = await services.store.find_by_id(user_id)
    if user is None:
        raise NotFound(f"User with ID {user_id} not found")
    return UserEnvelope(message="User retrieved successfully", user=UserResponse.from_public(user.public()))


@router.put("/{user_id}", response_model=UserEnvelope)
async def update_user(
    user_id: str,
    body: UpdateUserRequest,
    services: ServiceContainer = Depends(get_services),
):
    user = await services.store.update_profile(user_id, fullname=body.fullname, role=body.role)
    return UserEnvelope(message="User updated successfully", user=UserResponse.from_public(user.public()))


@router.delete("/{user_id}", response_model=UserEnvelope)
async def delete_user(user_id: str, services: ServiceContainer = Depends(get_services)):
    user = await services.store.delete(user_id)
    return UserEnvelope(message="User deleted successfully", user=UserResponse.from_public(user.public()))
