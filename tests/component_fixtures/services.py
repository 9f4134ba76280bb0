from __future__ import annotations

from app.components import component
from component_fixtures.ports import ClockPort, GreeterPort


@component
class Clock(ClockPort):
    def now(self) -> str:
        return "2024-01-01T00:00:00Z"


@component
class Greeter(GreeterPort):
    def __init__(self, *, clock: ClockPort, greeting: str = "hello") -> None:
        self.clock = clock
        self.greeting = greeting

    def greet(self, name: str) -> str:
        return f"{self.greeting} {name} at {self.clock.now()}"


class GreetingFormatter:
    def format(self, text: str) -> str:
        return text.title()
