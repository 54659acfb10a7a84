from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

from bugbridge.domain.models import NormalizedIssueRecord


class ReportFormatter(ABC):
    media_type: str = "text/plain; charset=utf-8"

    @property
    @abstractmethod
    def format_name(self) -> str:
        pass

    @abstractmethod
    def format(self, records: list[NormalizedIssueRecord]) -> str:
        """Serialize report records to text."""
        pass


class ReportFormatterRegistry:
    def __init__(self) -> None:
        self._formatters: dict[str, Callable[..., ReportFormatter]] = {}

    def register(self, formatter: ReportFormatter) -> None:
        name = formatter.format_name
        self.register_factory(name, lambda **_: formatter)

    def register_factory(self, name: str, factory: Callable[..., ReportFormatter]) -> None:
        if name in self._formatters:
            raise ValueError(f"Duplicate report formatter '{name}'")
        self._formatters[name] = factory

    def create(self, name: str, **kwargs: Any) -> ReportFormatter:
        factory = self._formatters.get(name)
        if factory is None:
            available = ", ".join(self.names()) or "none"
            raise ValueError(f"Unknown report format '{name}' (available: {available})")
        return factory(**kwargs)

    def names(self) -> list[str]:
        return sorted(self._formatters)
