from __future__ import annotations

from typing import List

from pydantic import computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL

from app.identity.models import DesiredIdentityState, DesiredUser


class Config(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    POSTGRES_HOST: str = "127.0.0.1"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "app_user"
    POSTGRES_PASSWORD: str = "change_me"
    POSTGRES_DB: str = "ifarmer"
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_TIMEOUT_SECONDS: int = 30
    DB_POOL_RECYCLE_SECONDS: int = 3600
    DB_CONNECT_TIMEOUT_SECONDS: int = 3
    DB_STATEMENT_TIMEOUT_MS: int = 5000

    DEBUG: bool = False
    APP_ENV: str = "development"
    PORT: int = 8000

    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True
    CORS_ALLOW_ORIGINS: str = "*"
    CORS_ALLOW_METHODS: str = "*"
    CORS_ALLOW_HEADERS: str = "*"
    CORS_ALLOW_CREDENTIALS: bool = True
    ALLOWED_HOSTS: str = "*"

    COMPONENT_SCAN_PACKAGES: str = "app.identity"
    COMPONENT_MODULE_PREFIXES: str = "app."
    COMPONENT_RESOLUTION_POLICY: str = "strict"

    IDENTITY_PROVISION_ON_STARTUP: bool = False
    IDENTITY_ROLES: str = "admin,buyer,producer"
    DEFAULT_ADMIN_EMAIL: str | None = None
    DEFAULT_ADMIN_PASSWORD: str | None = None
    DEFAULT_BUYER_EMAIL: str | None = None
    DEFAULT_BUYER_PASSWORD: str | None = None
    DEFAULT_PRODUCER_EMAIL: str | None = None
    DEFAULT_PRODUCER_PASSWORD: str | None = None
    IDENTITY_STORE_TIMEOUT_SECONDS: float = 10.0
    IDENTITY_STORE_RETRY_ATTEMPTS: int = 3
    IDENTITY_STORE_RETRY_BACKOFF_SECONDS: float = 0.2
    IDENTITY_PASSWORD_MIN_LENGTH: int = 6

    @computed_field  # type: ignore[prop-decorator]
    @property
    def database_url(self) -> str:
        return URL.create(
            "postgresql+psycopg",
            username=self.POSTGRES_USER,
            password=self.POSTGRES_PASSWORD,
            host=self.POSTGRES_HOST,
            port=int(self.POSTGRES_PORT),
            database=self.POSTGRES_DB,
        ).render_as_string(hide_password=False)

    @staticmethod
    def _parse_csv(value: str) -> List[str]:
        return [item.strip() for item in value.split(",") if item.strip()]

    @property
    def cors_allow_origins_list(self) -> List[str]:
        values = self._parse_csv(self.CORS_ALLOW_ORIGINS)
        return values or ["*"]

    @property
    def cors_allow_methods_list(self) -> List[str]:
        values = self._parse_csv(self.CORS_ALLOW_METHODS)
        return values or ["*"]

    @property
    def cors_allow_headers_list(self) -> List[str]:
        values = self._parse_csv(self.CORS_ALLOW_HEADERS)
        return values or ["*"]

    @property
    def allowed_hosts_list(self) -> List[str]:
        values = self._parse_csv(self.ALLOWED_HOSTS)
        return values or ["*"]

    @property
    def component_scan_packages_list(self) -> List[str]:
        return self._parse_csv(self.COMPONENT_SCAN_PACKAGES)

    @property
    def component_module_prefixes_list(self) -> List[str]:
        return self._parse_csv(self.COMPONENT_MODULE_PREFIXES)

    @property
    def component_resolution_policy(self) -> str:
        value = (self.COMPONENT_RESOLUTION_POLICY or "").strip().lower()
        return value or "strict"

    @property
    def identity_roles_list(self) -> List[str]:
        return self._parse_csv(self.IDENTITY_ROLES)

    @property
    def app_env(self) -> str:
        value = (self.APP_ENV or "").strip().lower()
        return value or "development"

    @property
    def desired_identity_state(self) -> DesiredIdentityState:
        # Default accounts are optional; a pair is provisioned only when both values are set.
        default_accounts = (
            (self.DEFAULT_ADMIN_EMAIL, self.DEFAULT_ADMIN_PASSWORD, "admin"),
            (self.DEFAULT_BUYER_EMAIL, self.DEFAULT_BUYER_PASSWORD, "buyer"),
            (self.DEFAULT_PRODUCER_EMAIL, self.DEFAULT_PRODUCER_PASSWORD, "producer"),
        )
        users = [
            DesiredUser(email=email, password=password, role_name=role_name)
            for email, password, role_name in default_accounts
            if (email or "").strip() and password
        ]
        return DesiredIdentityState(roles=self.identity_roles_list, users=users)
