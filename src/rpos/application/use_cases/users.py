from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timezone
from uuid import uuid4

from rpos.application.dto.requests import UserRequest, UserUpdateRequest
from rpos.application.dto.responses import UserListResponse, UserResponse
from rpos.application.errors import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from rpos.application.mappers.user_mapper import to_user_response
from rpos.application.ports.repositories import DuplicateEntryError, UnitOfWork
from rpos.domain.common.ids import UserId
from rpos.domain.user.entities import User, is_valid_pin

logger = logging.getLogger(__name__)


class UserNotFoundError(NotFoundError):
    code = "USER_NOT_FOUND"


class InvalidPinError(ValidationError):
    code = "INVALID_PIN"


class PinTakenError(ConflictError):
    code = "PIN_TAKEN"


class InvalidCredentialsError(AuthenticationError):
    code = "INVALID_PIN"


def _ensure_pin(pin: str) -> None:
    if not is_valid_pin(pin):
        raise InvalidPinError("pin must be exactly 4 digits")


class LoginWithPin:
    def __init__(self, uow: UnitOfWork) -> None:
        self._uow = uow

    def execute(self, pin: str) -> UserResponse:
        if not is_valid_pin(pin):
            raise InvalidCredentialsError("invalid pin")
        with self._uow as uow:
            user = uow.users.get_by_pin(pin)
        if user is None or not user.is_active:
            logger.info("login rejected")
            raise InvalidCredentialsError("invalid pin")
        logger.info("login accepted", extra={"user_id": str(user.user_id)})
        return to_user_response(user)


class ListUsers:
    def __init__(self, uow: UnitOfWork) -> None:
        self._uow = uow

    def execute(self, include_inactive: bool = False) -> UserListResponse:
        with self._uow as uow:
            users = uow.users.list(include_inactive=include_inactive)
        return UserListResponse(users=[to_user_response(user) for user in users])


class CreateUser:
    def __init__(self, uow: UnitOfWork) -> None:
        self._uow = uow

    def execute(self, request_dto: UserRequest) -> UserResponse:
        _ensure_pin(request_dto.pin)
        user = User(
            user_id=UserId(f"usr_{uuid4().hex[:12]}"),
            name=request_dto.name,
            pin=request_dto.pin,
            role=request_dto.role,
            is_active=request_dto.is_active,
            created_at=datetime.now(timezone.utc),
        )
        try:
            with self._uow as uow:
                if uow.users.get_by_pin(request_dto.pin) is not None:
                    raise PinTakenError("pin is already assigned to another user")
                uow.users.add(user)
                uow.commit()
        except DuplicateEntryError as exc:
            raise PinTakenError("pin is already assigned to another user") from exc
        return to_user_response(user)


class UpdateUser:
    def __init__(self, uow: UnitOfWork) -> None:
        self._uow = uow

    def execute(self, user_id: UserId, request_dto: UserUpdateRequest) -> UserResponse:
        changes = request_dto.model_dump(exclude_none=True)
        if "pin" in changes:
            _ensure_pin(changes["pin"])
        try:
            with self._uow as uow:
                user = uow.users.get(user_id)
                if user is None:
                    raise UserNotFoundError(f"user {user_id} not found")
                if "pin" in changes and changes["pin"] != user.pin:
                    if uow.users.get_by_pin(changes["pin"]) is not None:
                        raise PinTakenError("pin is already assigned to another user")
                try:
                    updated = replace(user, **changes)
                except ValueError as exc:
                    raise InvalidPinError(str(exc)) from exc
                uow.users.update(updated)
                uow.commit()
        except DuplicateEntryError as exc:
            raise PinTakenError("pin is already assigned to another user") from exc
        return to_user_response(updated)
