from __future__ import annotations

from fastapi import APIRouter, Query, status

from rpos.api.dependencies import unit_of_work
from rpos.application.dto.requests import LoginRequest, UserRequest, UserUpdateRequest
from rpos.application.dto.responses import UserListResponse, UserResponse
from rpos.application.use_cases.users import CreateUser, ListUsers, LoginWithPin, UpdateUser
from rpos.domain.common.ids import UserId

router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("", response_model=UserListResponse)
def list_users(
    include_inactive: bool = Query(default=False, alias="includeInactive"),
) -> UserListResponse:
    return ListUsers(unit_of_work()).execute(include_inactive=include_inactive)


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def create_user(request_dto: UserRequest) -> UserResponse:
    return CreateUser(unit_of_work()).execute(request_dto)


@router.post("/login", response_model=UserResponse)
def login(request_dto: LoginRequest) -> UserResponse:
    return LoginWithPin(unit_of_work()).execute(request_dto.pin)


@router.put("/{user_id}", response_model=UserResponse)
def update_user(user_id: str, request_dto: UserUpdateRequest) -> UserResponse:
    return UpdateUser(unit_of_work()).execute(UserId(user_id), request_dto)
