from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path


class ReportStorage(ABC):
    @abstractmethod
    async def write_text(self, key: str, text: str) -> Path:
        """Write ``text`` under ``key``, replacing any previous content."""
        pass
