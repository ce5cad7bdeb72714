"""Memory region model.

The target address space is made up of named regions (Flash, SRAM, CCM RAM,
battery-backed RAM...). A region is a plain value: a byte interval plus the
access kind it was created with. The registered region object doubles as the
handle that section placements refer to.
"""

from __future__ import annotations

from dataclasses import dataclass

from ldscript.core.capabilities import Access, RegionKind
from ldscript.utils.consts import format_address


@dataclass(frozen=True)
class AddressRange:
    """An immutable half-open address range [base, base + size)."""
    base: int
    size: int

    @property
    def end(self) -> int:
        """First address past the range."""
        return self.base + self.size

    def contains(self, address: int) -> bool:
        return self.base <= address < self.end

    def contains_range(self, address: int, size: int) -> bool:
        return self.contains(address) and address + size <= self.end

    def overlaps(self, other: AddressRange) -> bool:
        """True if the two ranges share at least one byte.

        Touching ranges (self.end == other.base) do not overlap.
        """
        return self.base < other.end and other.base < self.end

    def __str__(self) -> str:
        return f"{format_address(self.base)}-{format_address(self.end)}"


@dataclass(frozen=True)
class MemoryRegion:
    """A named region of the target address space."""
    name: str
    range: AddressRange
    kind: RegionKind

    @property
    def base(self) -> int:
        return self.range.base

    @property
    def size(self) -> int:
        return self.range.size

    @property
    def end(self) -> int:
        return self.range.end

    def contains(self, address: int) -> bool:
        return self.range.contains(address)

    def provides(self, required: Access) -> bool:
        return self.kind.provides(required)

    def __str__(self) -> str:
        return f"{self.name} ({self.kind.name}) {self.range}"
