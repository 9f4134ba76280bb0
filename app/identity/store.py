from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, cast

from passlib.context import CryptContext
from sqlalchemy import column, select, table, text
from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError, SQLAlchemyError

from app.components import component
from app.database import ConnectionProvider, open_connection_scope
from app.identity.ports import IdentityStoreError, IdentityStorePort, RoleRecordDTO, UserRecordDTO

IDENTITY_ROLES = table(
    "identity_roles",
    column("id"),
    column("name"),
    column("created_at"),
)

IDENTITY_USERS = table(
    "identity_users",
    column("id"),
    column("email"),
    column("normalized_email"),
    column("user_name"),
    column("password_hash"),
    column("created_at"),
)

DEFAULT_PASSWORD_CONTEXT = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


@dataclass(frozen=True)
class PasswordPolicy:
    min_length: int = 6
    require_digit: bool = True
    require_lowercase: bool = True
    require_uppercase: bool = True
    require_non_alphanumeric: bool = True

    def violations(self, password: str) -> list[str]:
        problems: list[str] = []
        if len(password) < self.min_length:
            problems.append(f"must be at least {self.min_length} characters")
        if self.require_digit and not any(ch.isdigit() for ch in password):
            problems.append("must contain a digit")
        if self.require_lowercase and not any(ch.islower() for ch in password):
            problems.append("must contain a lowercase letter")
        if self.require_uppercase and not any(ch.isupper() for ch in password):
            problems.append("must contain an uppercase letter")
        if self.require_non_alphanumeric and all(ch.isalnum() for ch in password):
            problems.append("must contain a non-alphanumeric character")
        return problems


def normalize_email(email: str) -> str:
    return email.strip().lower()


@contextmanager
def _translate_store_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except DBAPIError as exc:
        transient = bool(exc.connection_invalidated) or isinstance(exc, (OperationalError, InterfaceError))
        raise IdentityStoreError(f"{operation} failed: {type(exc).__name__}", transient=transient) from exc
    except SQLAlchemyError as exc:
        raise IdentityStoreError(f"{operation} failed: {type(exc).__name__}") from exc


@component
class IdentityStore(IdentityStorePort):
    """PostgreSQL identity store; the only place passwords are hashed."""

    def __init__(
        self,
        *,
        connection_provider: ConnectionProvider,
        password_policy: PasswordPolicy | None = None,
        password_context: CryptContext | None = None,
    ) -> None:
        self._connection_provider = connection_provider
        self._password_policy = password_policy or PasswordPolicy()
        self._password_context = password_context or DEFAULT_PASSWORD_CONTEXT

    def find_role_by_name(self, name: str) -> RoleRecordDTO | None:
        stmt = select(IDENTITY_ROLES.c.id, IDENTITY_ROLES.c.name, IDENTITY_ROLES.c.created_at).where(
            IDENTITY_ROLES.c.name == name
        )
        with _translate_store_errors("find_role_by_name"):
            with open_connection_scope(self._connection_provider) as conn:
                row = conn.execute(stmt).mappings().first()
        return cast(RoleRecordDTO, dict(row)) if row else None

    def create_role(self, name: str) -> RoleRecordDTO:
        sql = text(
            """
            INSERT INTO identity_roles (name)
            VALUES (:name)
            ON CONFLICT (name) DO NOTHING
            RETURNING id, name, created_at
            """
        )
        with _translate_store_errors("create_role"):
            with open_connection_scope(self._connection_provider) as conn:
                row = conn.execute(sql, {"name": name}).mappings().first()
        if row:
            return cast(RoleRecordDTO, dict(row))
        # Lost an insert race; the role exists, which is what the caller wanted.
        existing = self.find_role_by_name(name)
        if existing is None:
            raise IdentityStoreError(f"create_role failed: role '{name}' was neither inserted nor found")
        return existing

    def find_user_by_email(self, email: str) -> UserRecordDTO | None:
        stmt = select(
            IDENTITY_USERS.c.id,
            IDENTITY_USERS.c.email,
            IDENTITY_USERS.c.user_name,
            IDENTITY_USERS.c.created_at,
        ).where(IDENTITY_USERS.c.normalized_email == normalize_email(email))
        with _translate_store_errors("find_user_by_email"):
            with open_connection_scope(self._connection_provider) as conn:
                row = conn.execute(stmt).mappings().first()
        return cast(UserRecordDTO, dict(row)) if row else None

    def create_user(self, email: str, password: str) -> UserRecordDTO:
        problems = self._password_policy.violations(password)
        if problems:
            raise IdentityStoreError(f"password for '{email}' rejected: " + "; ".join(problems))

        sql = text(
            """
            INSERT INTO identity_users (email, normalized_email, user_name, password_hash)
            VALUES (:email, :normalized_email, :user_name, :password_hash)
            ON CONFLICT (normalized_email) DO NOTHING
            RETURNING id, email, user_name, created_at
            """
        )
        params: dict[str, Any] = {
            "email": email.strip(),
            "normalized_email": normalize_email(email),
            "user_name": email.strip(),
            "password_hash": self._password_context.hash(password),
        }
        with _translate_store_errors("create_user"):
            with open_connection_scope(self._connection_provider) as conn:
                row = conn.execute(sql, params).mappings().first()
        if row:
            return cast(UserRecordDTO, dict(row))
        # Lost an insert race on normalized_email; hand back the stored account.
        existing = self.find_user_by_email(email)
        if existing is None:
            raise IdentityStoreError(f"create_user failed: user '{email}' was neither inserted nor found")
        return existing

    def add_user_to_role(self, user: UserRecordDTO, role_name: str) -> bool:
        user_id = user.get("id")
        if user_id is None:
            raise IdentityStoreError("add_user_to_role failed: user record has no id")

        role_sql = text("SELECT id FROM identity_roles WHERE name = :name")
        link_sql = text(
            """
            INSERT INTO identity_user_roles (user_id, role_id)
            VALUES (:user_id, :role_id)
            ON CONFLICT (user_id, role_id) DO NOTHING
            RETURNING user_id
            """
        )
        with _translate_store_errors("add_user_to_role"):
            with open_connection_scope(self._connection_provider) as conn:
                role_row = conn.execute(role_sql, {"name": role_name}).mappings().first()
                if not role_row:
                    raise IdentityStoreError(f"add_user_to_role failed: role '{role_name}' does not exist")
                linked = conn.execute(link_sql, {"user_id": user_id, "role_id": role_row["id"]}).mappings().first()
        return linked is not None
