"""Section table.

A section is placed with two region references: the VMA region, where the CPU
uses it, and the LMA region, where its initial bytes are stored. When the two
differ the section is a boot-copy section and startup code must copy it
before use.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Optional

from ldscript.core.address_space import MemoryRegion
from ldscript.core.capabilities import Access

logger = logging.getLogger(__name__)


class SectionKind(Enum):
    """What a section holds, which decides how it is emitted and placed."""

    VECTOR_TABLE = "vector_table"
    TEXT = "text"
    RAMFUNC = "ramfunc"
    DATA = "data"
    CUSTOM = "custom"
    BSS = "bss"
    STACK = "stack"

    @property
    def rank(self) -> int:
        """Emission order inside the SECTIONS block."""
        return _KIND_ORDER.index(self)

    @property
    def vma_access(self) -> Access:
        return _REQUIRED_ACCESS[self][0]

    @property
    def lma_access(self) -> Access:
        return _REQUIRED_ACCESS[self][1]

    @property
    def is_zero_fill(self) -> bool:
        """Sections with no initial contents (NOLOAD)."""
        return self in (SectionKind.BSS, SectionKind.STACK)

    @classmethod
    def from_string(cls, text: str) -> SectionKind:
        try:
            return cls(text.strip().lower())
        except ValueError as exc:
            valid = ", ".join(kind.value for kind in cls)
            raise ValueError(f"kind must be one of {valid}, got {text!r}") from exc


_KIND_ORDER = list(SectionKind)

# (VMA requirement, LMA requirement) per kind
_REQUIRED_ACCESS: dict[SectionKind, tuple[Access, Access]] = {
    SectionKind.VECTOR_TABLE: (Access.READ, Access.READ),
    SectionKind.TEXT: (Access.EXECUTE, Access.READ),
    SectionKind.RAMFUNC: (Access.EXECUTE, Access.READ),
    SectionKind.DATA: (Access.READ | Access.WRITE, Access.READ),
    SectionKind.CUSTOM: (Access.READ, Access.READ),
    SectionKind.BSS: (Access.READ | Access.WRITE, Access.READ | Access.WRITE),
    SectionKind.STACK: (Access.READ | Access.WRITE, Access.READ | Access.WRITE),
}


@dataclass(frozen=True)
class Section:
    """Placement descriptor for one output section."""
    name: str
    kind: SectionKind
    vma: MemoryRegion
    lma: MemoryRegion
    size: Optional[int] = None
    offset: Optional[int] = None

    @property
    def is_boot_copy(self) -> bool:
        """True if startup code must copy the section from LMA to VMA."""
        return self.vma != self.lma

    @property
    def sort_key(self) -> tuple[int, str]:
        return (self.kind.rank, self.name)


class SectionTable:
    """Name -> Section mapping. Registering a name again replaces the entry."""

    def __init__(self) -> None:
        self._sections: dict[str, Section] = {}

    def put(self, section: Section) -> None:
        previous = self._sections.get(section.name)
        if previous is not None:
            logger.warning(
                f"Section '{section.name}' redefined; replacing "
                f"{previous.vma.name}/{previous.lma.name} with "
                f"{section.vma.name}/{section.lma.name}"
            )
        self._sections[section.name] = section
        logger.debug(
            f"Registered section '{section.name}' ({section.kind.value}) "
            f"vma={section.vma.name} lma={section.lma.name}"
        )

    def get(self, name: str) -> Optional[Section]:
        return self._sections.get(name)

    def of_kind(self, kind: SectionKind) -> list[Section]:
        return [s for s in self.ordered() if s.kind is kind]

    def ordered(self) -> list[Section]:
        """Sections in deterministic emission order (kind rank, then name)."""
        return sorted(self._sections.values(), key=lambda s: s.sort_key)

    def as_dict(self) -> dict[str, Section]:
        return dict(self._sections)

    def __contains__(self, name: object) -> bool:
        return name in self._sections

    def __iter__(self) -> Iterator[Section]:
        return iter(self.ordered())

    def __len__(self) -> int:
        return len(self._sections)
