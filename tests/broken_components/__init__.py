from __future__ import annotations

from typing import Protocol

from app.components import component


class NotifierPort(Protocol):
    def notify(self, message: str) -> None:
        ...


@component
class SmsGateway(NotifierPort):
    def notify(self, message: str) -> None:
        return None
