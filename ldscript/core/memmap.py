"""Region registry.

Keeps the regions of one layout and refuses any region whose byte interval
intersects one that is already registered.
"""

from __future__ import annotations

import logging
from typing import Iterator, Optional

from ldscript.core.address_space import AddressRange, MemoryRegion
from ldscript.core.capabilities import RegionKind
from ldscript.core.exceptions import InvalidRegionError, OverlappingRegionError
from ldscript.utils.consts import ConstUtils

logger = logging.getLogger(__name__)


class RegionRegistry:
    """Append-only set of non-overlapping memory regions.

    Overlap checking is a linear scan over every registered region. Firmware
    images have a handful of regions, so there is no index structure.

    Region names are not required to be unique here; the serializer rejects
    duplicates when the layout is generated.
    """

    def __init__(self) -> None:
        self._regions: list[MemoryRegion] = []

    def add(self, name: str, base: int, size: int, kind: RegionKind) -> MemoryRegion:
        """Register a region and return it.

        Raises:
            InvalidRegionError: size is not positive or the range leaves the
                32-bit address space
            OverlappingRegionError: the range intersects a registered region
        """
        self._validate_extent(name, base, size)

        address_range = AddressRange(base, size)
        conflict = self.find_overlap(address_range)
        if conflict is not None:
            raise OverlappingRegionError(name, base, size, conflict.name)

        region = MemoryRegion(name=name, range=address_range, kind=kind)
        self._regions.append(region)
        logger.debug(f"Registered region {region}")
        return region

    def find_overlap(self, address_range: AddressRange) -> Optional[MemoryRegion]:
        """Return the first registered region intersecting address_range."""
        for region in self._regions:
            if region.range.overlaps(address_range):
                return region
        return None

    def get(self, name: str) -> Optional[MemoryRegion]:
        """Return the first region registered under name, if any."""
        for region in self._regions:
            if region.name == name:
                return region
        return None

    def resolve_region(self, address: int) -> Optional[MemoryRegion]:
        """Resolve which region contains the address."""
        for region in self._regions:
            if region.contains(address):
                return region
        return None

    def duplicate_names(self) -> list[str]:
        """Names used by more than one region, in first-seen order."""
        seen: set[str] = set()
        duplicates: list[str] = []
        for region in self._regions:
            if region.name in seen and region.name not in duplicates:
                duplicates.append(region.name)
            seen.add(region.name)
        return duplicates

    @property
    def regions(self) -> tuple[MemoryRegion, ...]:
        """All regions, in registration order."""
        return tuple(self._regions)

    def __contains__(self, region: object) -> bool:
        return region in self._regions

    def __iter__(self) -> Iterator[MemoryRegion]:
        return iter(tuple(self._regions))

    def __len__(self) -> int:
        return len(self._regions)

    @staticmethod
    def _validate_extent(name: str, base: int, size: int) -> None:
        if size <= 0:
            raise InvalidRegionError(name, base, size, "size must be > 0")
        if not 0 <= base <= ConstUtils.ADDRESS_MAX:
            raise InvalidRegionError(
                name, base, size, "base address is outside the 32-bit address space"
            )
        if base + size > ConstUtils.ADDRESS_SPACE_SIZE:
            raise InvalidRegionError(
                name, base, size, "region runs past the end of the 32-bit address space"
            )
