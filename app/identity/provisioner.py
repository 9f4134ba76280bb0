"""Reconcile desired roles and privileged users against the identity store.

Store calls run one at a time on a single worker thread so each can be
bounded by a timeout. Transient store failures are retried with exponential
backoff; everything else is translated into a startup error immediately.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterator
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from contextlib import contextmanager
from typing import Any, TypeVar

from app.components import component
from app.errors import ProvisioningTimeoutError, RoleStoreError, UserProvisioningError
from app.identity.models import DesiredIdentityState, ProvisioningReport
from app.identity.ports import IdentityProvisionerPort, IdentityStoreError, IdentityStorePort, UserRecordDTO
from app.observability import PROVISIONING_ACTIONS

logger = logging.getLogger("ifarmer.identity")

T = TypeVar("T")


@component
class IdentityProvisioner(IdentityProvisionerPort):
    def __init__(
        self,
        *,
        store: IdentityStorePort,
        store_timeout_seconds: float = 10.0,
        store_retry_attempts: int = 3,
        store_retry_backoff_seconds: float = 0.2,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._store = store
        self._timeout_seconds = float(store_timeout_seconds)
        self._retry_attempts = max(1, int(store_retry_attempts))
        self._retry_backoff_seconds = max(0.0, float(store_retry_backoff_seconds))
        self._sleep = sleep
        self._executor: ThreadPoolExecutor | None = None

    def provision(self, state: DesiredIdentityState) -> ProvisioningReport:
        roles_created: list[str] = []
        users_created: list[str] = []
        associations_added: list[tuple[str, str]] = []

        with self._store_worker():
            # Every role exists before any user is attached to one.
            for role_name in state.roles:
                if self.ensure_role(role_name):
                    roles_created.append(role_name)
            for user in state.users:
                user_created, association_added = self.ensure_user_in_role(user.email, user.password, user.role_name)
                if user_created:
                    users_created.append(user.email)
                if association_added:
                    associations_added.append((user.email, user.role_name))

        report = ProvisioningReport(
            roles_created=tuple(roles_created),
            users_created=tuple(users_created),
            associations_added=tuple(associations_added),
        )
        logger.info(
            "identity_provisioning_completed roles_created=%d users_created=%d associations_added=%d",
            len(report.roles_created),
            len(report.users_created),
            len(report.associations_added),
        )
        return report

    def ensure_role(self, name: str) -> bool:
        with self._store_worker():
            try:
                if self._call("find_role_by_name", self._store.find_role_by_name, name) is not None:
                    return False
                self._call("create_role", self._store.create_role, name)
            except IdentityStoreError as exc:
                raise RoleStoreError(f"Failed to ensure role '{name}': {exc}", role=name) from exc

        PROVISIONING_ACTIONS.labels("role_created").inc()
        logger.info("role_created", extra={"role": name})
        return True

    def ensure_user_in_role(self, email: str, password: str, role_name: str) -> tuple[bool, bool]:
        """Return ``(user_created, association_added)``."""
        with self._store_worker():
            try:
                role = self._call("find_role_by_name", self._store.find_role_by_name, role_name)
            except IdentityStoreError as exc:
                raise RoleStoreError(f"Failed to look up role '{role_name}': {exc}", role=role_name) from exc
            if role is None:
                raise UserProvisioningError(
                    f"Cannot provision user '{email}': role '{role_name}' does not exist.",
                    email=email,
                    role=role_name,
                )

            user, user_created = self._find_or_create_user(email, password, role_name)

            try:
                association_added = bool(self._call("add_user_to_role", self._store.add_user_to_role, user, role_name))
            except IdentityStoreError as exc:
                raise UserProvisioningError(
                    f"Failed to add user '{email}' to role '{role_name}': {exc}",
                    email=email,
                    role=role_name,
                ) from exc

        if association_added:
            PROVISIONING_ACTIONS.labels("role_assigned").inc()
            logger.info("user_added_to_role", extra={"email": email, "role": role_name})
        return user_created, association_added

    def _find_or_create_user(self, email: str, password: str, role_name: str) -> tuple[UserRecordDTO, bool]:
        try:
            existing = self._call("find_user_by_email", self._store.find_user_by_email, email)
        except IdentityStoreError as exc:
            raise UserProvisioningError(f"Failed to look up user '{email}': {exc}", email=email, role=role_name) from exc
        if existing is not None:
            return existing, False

        try:
            created = self._call("create_user", self._store.create_user, email, password)
        except IdentityStoreError as exc:
            raise UserProvisioningError(f"Failed to create user '{email}': {exc}", email=email, role=role_name) from exc
        if created is None:
            raise UserProvisioningError(
                f"Failed to create user '{email}': identity store returned no user.",
                email=email,
                role=role_name,
            )

        PROVISIONING_ACTIONS.labels("user_created").inc()
        logger.info("user_created", extra={"email": email})
        return created, True

    @contextmanager
    def _store_worker(self) -> Iterator[None]:
        if self._executor is not None:
            yield
            return
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="identity-store")
        try:
            yield
        finally:
            executor, self._executor = self._executor, None
            # A timed-out call may still be running; do not block shutdown on it.
            executor.shutdown(wait=False, cancel_futures=True)

    def _call(self, operation: str, func: Callable[..., T], *args: Any) -> T:
        assert self._executor is not None
        delay = self._retry_backoff_seconds
        attempt = 1
        while True:
            future = self._executor.submit(func, *args)
            try:
                return future.result(timeout=self._timeout_seconds)
            except FutureTimeoutError as exc:
                future.cancel()
                raise ProvisioningTimeoutError(
                    f"Identity store call '{operation}' did not complete within {self._timeout_seconds:g}s.",
                    operation=operation,
                    timeout_seconds=self._timeout_seconds,
                ) from exc
            except IdentityStoreError as exc:
                if not exc.transient or attempt >= self._retry_attempts:
                    raise
                logger.warning(
                    "identity_store_retry",
                    extra={"operation": operation, "attempt": attempt, "error": str(exc)},
                )
                self._sleep(delay)
                delay *= 2
                attempt += 1
