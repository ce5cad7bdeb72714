"""Serializer interface for finished layouts."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ldscript.core.layout import MemoryLayout


class LayoutSerializer(ABC):
    """Turns a validated MemoryLayout into output files.

    Implementations only produce text; MemoryLayout.generate() owns
    validation, writing and the frozen state transition.
    """

    @abstractmethod
    def render(self, layout: "MemoryLayout") -> dict[str, str]:
        """Return file name -> file contents, in a stable order."""
        ...
