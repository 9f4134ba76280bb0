from typing import Any, Callable, Dict, List, Optional
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient
from prometheus_client.parser import text_string_to_metric_families

from app.config import Config
from app.identity.ports import IdentityStoreError, RoleRecordDTO, UserRecordDTO


def build_test_config(**overrides: Any) -> Config:
    defaults: dict[str, Any] = {
        "APP_ENV": "test",
        "LOG_LEVEL": "WARNING",
        "LOG_JSON": False,
        "POSTGRES_HOST": "127.0.0.1",
        "POSTGRES_PORT": 5432,
        "POSTGRES_USER": "app_user",
        "POSTGRES_PASSWORD": "change_me",
        "POSTGRES_DB": "ifarmer",
        "COMPONENT_SCAN_PACKAGES": "app.identity",
        "COMPONENT_MODULE_PREFIXES": "app.",
        "COMPONENT_RESOLUTION_POLICY": "strict",
        "IDENTITY_PROVISION_ON_STARTUP": False,
        "DEFAULT_ADMIN_EMAIL": None,
        "DEFAULT_ADMIN_PASSWORD": None,
        "DEFAULT_BUYER_EMAIL": None,
        "DEFAULT_BUYER_PASSWORD": None,
        "DEFAULT_PRODUCER_EMAIL": None,
        "DEFAULT_PRODUCER_PASSWORD": None,
    }
    defaults.update(overrides)
    return Config.model_validate(defaults)


def metric_sample_value(metrics_text: str, name: str, **labels: str) -> float:
    for family in text_string_to_metric_families(metrics_text):
        for sample in family.samples:
            if sample.name == name and sample.labels == labels:
                return float(sample.value)
    return 0.0


class StubResult:
    def __init__(
        self,
        *,
        rowcount: int = 0,
        rows: Optional[List[Dict[str, Any]]] = None,
        scalar_value: Optional[Any] = None,
    ) -> None:
        self.rowcount = rowcount
        self._rows = rows or []
        self._scalar_value = scalar_value

    def mappings(self) -> "StubResult":
        return self

    def all(self) -> List[Dict[str, Any]]:
        return self._rows

    def first(self) -> Optional[Dict[str, Any]]:
        return self._rows[0] if self._rows else None

    def scalar(self) -> Optional[Any]:
        return self._scalar_value


class StubConnection:
    def __init__(self, handler: Callable[[Any, Optional[Dict[str, Any]]], StubResult]) -> None:
        self._handler = handler
        self.calls: List[Dict[str, Any]] = []

    def execute(self, statement: Any, params: Optional[Dict[str, Any]] = None) -> StubResult:
        self.calls.append(
            {
                "statement": str(statement),
                "statement_obj": statement,
                "params": params,
            }
        )
        return self._handler(statement, params)


class StubBeginContext:
    def __init__(self, connection: StubConnection) -> None:
        self._connection = connection

    def __enter__(self) -> StubConnection:
        return self._connection

    def __exit__(self, exc_type, exc_value, traceback) -> bool:
        return False


class StubEngine:
    def __init__(self, handler: Optional[Callable[[Any, Optional[Dict[str, Any]]], StubResult]] = None) -> None:
        if handler is None:
            def _default_handler(_statement, _params):
                return StubResult()

            handler = _default_handler
        self.connection = StubConnection(handler)
        self.disposed = False

    def begin(self) -> StubBeginContext:
        return StubBeginContext(self.connection)

    def dispose(self) -> None:
        self.disposed = True


class FakeIdentityStore:
    """In-memory identity store that records every call it receives."""

    def __init__(self) -> None:
        self.roles: Dict[str, RoleRecordDTO] = {}
        self.users: Dict[str, UserRecordDTO] = {}
        self.passwords: Dict[str, str] = {}
        self.user_roles: List[tuple[int, str]] = []
        self.calls: List[str] = []
        self.failures: Dict[str, List[Exception]] = {}
        self.create_user_returns_none = False

    def fail(self, operation: str, *errors: Exception) -> None:
        self.failures.setdefault(operation, []).extend(errors)

    def _enter(self, operation: str) -> None:
        self.calls.append(operation)
        pending = self.failures.get(operation)
        if pending:
            raise pending.pop(0)

    def find_role_by_name(self, name: str) -> Optional[RoleRecordDTO]:
        self._enter("find_role_by_name")
        return self.roles.get(name)

    def create_role(self, name: str) -> RoleRecordDTO:
        self._enter("create_role")
        role: RoleRecordDTO = {"id": len(self.roles) + 1, "name": name}
        self.roles[name] = role
        return role

    def find_user_by_email(self, email: str) -> Optional[UserRecordDTO]:
        self._enter("find_user_by_email")
        return self.users.get(email.lower())

    def create_user(self, email: str, password: str) -> Optional[UserRecordDTO]:
        self._enter("create_user")
        if self.create_user_returns_none:
            return None
        user: UserRecordDTO = {"id": len(self.users) + 1, "email": email, "user_name": email}
        self.users[email.lower()] = user
        self.passwords[email.lower()] = password
        return user

    def add_user_to_role(self, user: UserRecordDTO, role_name: str) -> bool:
        self._enter("add_user_to_role")
        if role_name not in self.roles:
            raise IdentityStoreError(f"role '{role_name}' does not exist")
        key = (user["id"], role_name)
        if key in self.user_roles:
            return False
        self.user_roles.append(key)
        return True


@pytest.fixture(scope="session")
def app_instance():
    import_engine = StubEngine()
    with patch("app.database.create_engine", return_value=import_engine):
        from app import create_app

        api = create_app(build_test_config())
    api._bootstrap_engine_for_test = import_engine
    return api


@pytest.fixture
def client(app_instance):
    with TestClient(app_instance) as tc:
        yield tc


@pytest.fixture
def make_engine():
    def _factory(handler: Callable[[Any, Optional[Dict[str, Any]]], StubResult]) -> StubEngine:
        return StubEngine(handler=handler)

    return _factory


@pytest.fixture
def make_connection_provider(make_engine):
    def _factory(handler: Callable[[Any, Optional[Dict[str, Any]]], StubResult]):
        engine = make_engine(handler)
        return engine.begin, engine

    return _factory


@pytest.fixture
def use_stub_connection_provider(app_instance, make_engine):
    original_provider = app_instance.state.connection_provider
    original_engine = getattr(app_instance.state, "db_engine", None)

    def _use(handler: Callable[[Any, Optional[Dict[str, Any]]], StubResult]) -> StubEngine:
        engine = make_engine(handler)
        app_instance.state.connection_provider = engine.begin
        app_instance.state.db_engine = engine
        return engine

    yield _use
    app_instance.state.connection_provider = original_provider
    app_instance.state.db_engine = original_engine


@pytest.fixture
def identity_store():
    return FakeIdentityStore()


@pytest.fixture
def retry_sleeps():
    return []


@pytest.fixture
def provisioner(identity_store, retry_sleeps):
    from app.identity.provisioner import IdentityProvisioner

    return IdentityProvisioner(
        store=identity_store,
        store_timeout_seconds=2.0,
        store_retry_attempts=3,
        store_retry_backoff_seconds=0.1,
        sleep=retry_sleeps.append,
    )
