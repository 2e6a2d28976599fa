from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from identity_service.DB.models.users import User
from identity_service.enums import Permission
from identity_service.routes.deps import SessionDep, JwtAuth
from identity_service.schemas.oauth import AuthProviderRead
from identity_service.schemas.user import UserRead, UsersRead, UserUpdate
from identity_service.services import auth_providers as link_store
from identity_service.services import users as user_services

users_router = APIRouter(
    prefix='/users',
    tags=["Users"],
)

UserReader = Annotated[User, Depends(JwtAuth(Permission.GET_USERS))]
UserManager = Annotated[User, Depends(JwtAuth(Permission.MANAGE_USERS))]


@users_router.get("", response_model=UsersRead, status_code=status.HTTP_200_OK)
async def get_users(
        _: UserReader,
        db: SessionDep,
        skip: int = Query(0, ge=0),
        limit: int = Query(10, ge=1, le=100),
        search: Optional[str] = Query(None),
):
    return await user_services.get_users(db, skip=skip, limit=limit, search=search)


@users_router.get("/{user_id}", response_model=UserRead, status_code=status.HTTP_200_OK)
async def get_user(user_id: UUID, _: UserReader, db: SessionDep):
    user = await user_services.get_user_or_404(db, user_id)
    return UserRead.model_validate(user)


@users_router.patch("/{user_id}", response_model=UserRead, status_code=status.HTTP_200_OK)
async def update_user(user_id: UUID, update_data: UserUpdate, _: UserManager, db: SessionDep):
    user = await user_services.get_user_or_404(db, user_id)
    user = await user_services.update_profile(user, update_data, db)
    return UserRead.model_validate(user)


@users_router.get("/{user_id}/auth-providers", response_model=list[AuthProviderRead], status_code=status.HTTP_200_OK)
async def get_user_auth_providers(user_id: UUID, _: UserReader, db: SessionDep):
    """ Providers linked to the account """
    await user_services.get_user_or_404(db, user_id)
    links = await link_store.get_user_links(db, user_id)
    return [AuthProviderRead.model_validate(link) for link in links]
