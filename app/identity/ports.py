from __future__ import annotations

from datetime import datetime
from typing import Protocol, TypedDict

from app.identity.models import DesiredIdentityState, ProvisioningReport


class RoleRecordDTO(TypedDict, total=False):
    id: int
    name: str
    created_at: datetime


class UserRecordDTO(TypedDict, total=False):
    id: int
    email: str
    user_name: str
    created_at: datetime


class IdentityStoreError(RuntimeError):
    """Raised by identity store implementations.

    ``transient`` marks failures worth retrying, such as a dropped connection.
    """

    def __init__(self, message: str, *, transient: bool = False) -> None:
        super().__init__(message)
        self.transient = transient


class IdentityStorePort(Protocol):
    def find_role_by_name(self, name: str) -> RoleRecordDTO | None:
        ...

    def create_role(self, name: str) -> RoleRecordDTO:
        ...

    def find_user_by_email(self, email: str) -> UserRecordDTO | None:
        ...

    def create_user(self, email: str, password: str) -> UserRecordDTO | None:
        ...

    def add_user_to_role(self, user: UserRecordDTO, role_name: str) -> bool:
        ...


class IdentityProvisionerPort(Protocol):
    def provision(self, state: DesiredIdentityState) -> ProvisioningReport:
        ...

    def ensure_role(self, name: str) -> bool:
        ...

    def ensure_user_in_role(self, email: str, password: str, role_name: str) -> tuple[bool, bool]:
        ...
