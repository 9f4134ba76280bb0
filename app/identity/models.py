from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


class DesiredUser(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    email: str
    password: str = Field(repr=False)
    role_name: str

    @field_validator("email", "role_name")
    @classmethod
    def _strip_required_text(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("must not be blank")
        return stripped

    @field_validator("password")
    @classmethod
    def _require_password(cls, value: str) -> str:
        if not value:
            raise ValueError("must not be empty")
        return value


class DesiredIdentityState(BaseModel):
    """Roles and privileged users that must exist after provisioning."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    roles: tuple[str, ...] = ()
    users: tuple[DesiredUser, ...] = ()

    @field_validator("roles", mode="before")
    @classmethod
    def _dedupe_roles(cls, value: object) -> object:
        if not isinstance(value, (list, tuple)):
            return value
        seen: list[str] = []
        for item in value:
            if not isinstance(item, str) or not item.strip():
                raise ValueError("role names must be non-blank strings")
            name = item.strip()
            if name not in seen:
                seen.append(name)
        return tuple(seen)


class ProvisioningReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    roles_created: tuple[str, ...] = ()
    users_created: tuple[str, ...] = ()
    associations_added: tuple[tuple[str, str], ...] = ()

    @property
    def changed(self) -> bool:
        return bool(self.roles_created or self.users_created or self.associations_added)
