"""Memory layout builder.

MemoryLayout is the root aggregate: it owns the region registry and the
section table, checks every registration against their invariants, and hands
the finished model to a serializer exactly once.

Getting started:
    layout = MemoryLayout()
    flash = layout.add_rx_region("flash", 0x08000000, kilobytes(512))
    ram = layout.add_rwx_region("ram", 0x20000000, kilobytes(128))
    layout.vector_table(flash)
    layout.text(flash, flash)
    layout.data(ram, flash)
    layout.bss(ram)
    layout.stack(ram, kilobytes(4))
    layout.generate("build/")
"""

from __future__ import annotations

import logging
from collections import defaultdict
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional, Union

from ldscript.core.address_space import AddressRange, MemoryRegion
from ldscript.core.capabilities import Access, RegionKind
from ldscript.core.exceptions import (
    CapabilityError,
    GenerationError,
    IncompleteLayoutError,
    InvalidSectionError,
    LayoutFrozenError,
    UnknownRegionError,
)
from ldscript.core.memmap import RegionRegistry
from ldscript.core.sections import Section, SectionKind, SectionTable
from ldscript.utils.consts import format_address, format_size

if TYPE_CHECKING:
    from ldscript.interfaces.serializer import LayoutSerializer

logger = logging.getLogger(__name__)


class LayoutState(Enum):
    EMPTY = "empty"
    POPULATED = "populated"
    GENERATED = "generated"


class MemoryLayout:
    """Regions plus the sections placed into them.

    Regions are append-only and must not overlap. Sections are keyed by name;
    registering a name again replaces the previous definition. Once
    generate() succeeds the layout is frozen.

    THREAD SAFETY: Not thread-safe. Build one layout per target from a single
    thread.
    """

    def __init__(self, name: str = "layout") -> None:
        self.name = name
        self._registry = RegionRegistry()
        self._sections = SectionTable()
        self._state = LayoutState.EMPTY

    # ------------------------------------------------------------------
    # Regions
    # ------------------------------------------------------------------

    def add_region(self, name: str, base: int, size: int, kind: RegionKind) -> MemoryRegion:
        """Register a region and return its handle.

        Raises:
            OverlappingRegionError: the interval intersects a registered region
            InvalidRegionError: empty region or outside the 32-bit space
            LayoutFrozenError: the layout was already generated
        """
        self._check_mutable()
        region = self._registry.add(name, base, size, kind)
        self._state = LayoutState.POPULATED
        return region

    def add_rw_region(self, name: str, base: int, size: int) -> MemoryRegion:
        return self.add_region(name, base, size, RegionKind.RW)

    def add_rx_region(self, name: str, base: int, size: int) -> MemoryRegion:
        return self.add_region(name, base, size, RegionKind.RX)

    def add_rwx_region(self, name: str, base: int, size: int) -> MemoryRegion:
        return self.add_region(name, base, size, RegionKind.RWX)

    def get_region(self, name: str) -> Optional[MemoryRegion]:
        return self._registry.get(name)

    def resolve_region(self, address: int) -> Optional[MemoryRegion]:
        """Resolve which region contains the address."""
        return self._registry.resolve_region(address)

    @property
    def regions(self) -> tuple[MemoryRegion, ...]:
        return self._registry.regions

    # ------------------------------------------------------------------
    # Sections
    # ------------------------------------------------------------------

    def vector_table(
        self,
        region: MemoryRegion,
        offset: Optional[int] = None,
        size: Optional[int] = None,
        name: str = "vector_table",
    ) -> Section:
        """Place the interrupt vector table (reset vector) in region."""
        return self._place(name, SectionKind.VECTOR_TABLE, region, region, size, offset)

    def text(
        self,
        vma: MemoryRegion,
        lma: MemoryRegion,
        size: Optional[int] = None,
        name: str = "text",
    ) -> Section:
        """Place code. vma must be executable, lma readable."""
        return self._place(name, SectionKind.TEXT, vma, lma, size)

    def data(
        self,
        vma: MemoryRegion,
        lma: MemoryRegion,
        size: Optional[int] = None,
        name: str = "data",
    ) -> Section:
        """Place initialized data. vma must be writable."""
        return self._place(name, SectionKind.DATA, vma, lma, size)

    def bss(
        self,
        region: MemoryRegion,
        size: Optional[int] = None,
        name: str = "bss",
    ) -> Section:
        """Place zero-initialized data. Never copied at boot."""
        return self._place(name, SectionKind.BSS, region, region, size)

    def stack(self, region: MemoryRegion, size: int, name: str = "stack") -> Section:
        """Reserve size bytes of stack in region."""
        return self._place(name, SectionKind.STACK, region, region, size)

    def ramfunc(
        self,
        vma: MemoryRegion,
        lma: MemoryRegion,
        size: Optional[int] = None,
        name: str = "ramfunc",
    ) -> Section:
        """Place functions that execute from RAM after being copied there."""
        return self._place(name, SectionKind.RAMFUNC, vma, lma, size)

    def custom_section(
        self,
        name: str,
        vma: MemoryRegion,
        lma: MemoryRegion,
        size: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> Section:
        """Place an arbitrary named section."""
        return self._place(name, SectionKind.CUSTOM, vma, lma, size, offset)

    def get_section(self, name: str) -> Optional[Section]:
        return self._sections.get(name)

    @property
    def sections(self) -> dict[str, Section]:
        """Copy of the name -> Section mapping."""
        return self._sections.as_dict()

    def ordered_sections(self) -> list[Section]:
        """Sections in emission order."""
        return self._sections.ordered()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def state(self) -> LayoutState:
        return self._state

    def validate(self) -> None:
        """Check that the layout can be turned into a bootable image.

        Raises:
            IncompleteLayoutError: on the first problem found
        """
        if not self._registry.regions:
            raise IncompleteLayoutError("Layout has no memory regions")

        duplicates = self._registry.duplicate_names()
        if duplicates:
            raise IncompleteLayoutError(
                f"Region names must be unique, duplicated: {', '.join(duplicates)}",
                details={"regions": duplicates},
            )

        if not self._sections.of_kind(SectionKind.VECTOR_TABLE):
            raise IncompleteLayoutError(
                "Layout has no vector table section; the reset vector would be missing"
            )

        self._check_region_usage()
        self._check_fixed_placements()

    def generate(
        self,
        output_directory: Union[str, Path],
        serializer: Optional[LayoutSerializer] = None,
    ) -> list[Path]:
        """Validate, render and write the layout, then freeze it.

        Args:
            output_directory: Directory to write into (created if missing)
            serializer: Output format; defaults to GnuLdSerializer

        Returns:
            Paths of the written files

        Raises:
            IncompleteLayoutError: the layout is missing required elements
            GenerationError: a file could not be written
            LayoutFrozenError: the layout was already generated
        """
        self._check_mutable()
        self.validate()

        if serializer is None:
            # Deferred: the gnu package imports this module
            from ldscript.gnu.serializer import GnuLdSerializer

            serializer = GnuLdSerializer()

        rendered = serializer.render(self)
        out_dir = Path(output_directory)
        written = [self._write_file(out_dir, filename, text) for filename, text in rendered.items()]

        self._state = LayoutState.GENERATED
        return written

    def describe(self) -> dict[str, Any]:
        """Return a human-readable description of the layout."""
        return {
            "name": self.name,
            "state": self._state.value,
            "regions": [
                {
                    "name": region.name,
                    "base": format_address(region.base),
                    "size": format_size(region.size),
                    "end": format_address(region.end),
                    "access": region.kind.name,
                }
                for region in self._registry.regions
            ],
            "sections": [
                {
                    "name": section.name,
                    "kind": section.kind.value,
                    "vma": section.vma.name,
                    "lma": section.lma.name,
                    "size": None if section.size is None else format_size(section.size),
                    "offset": None if section.offset is None else f"0x{section.offset:X}",
                    "boot_copy": section.is_boot_copy,
                }
                for section in self._sections.ordered()
            ],
        }

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _place(
        self,
        name: str,
        kind: SectionKind,
        vma: MemoryRegion,
        lma: MemoryRegion,
        size: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> Section:
        self._check_mutable()
        operation = f"{kind.value} section '{name}'"
        self._require(operation, "VMA", vma, kind.vma_access)
        self._require(operation, "LMA", lma, kind.lma_access)
        if vma != lma:
            # Startup code writes boot-copy sections into their VMA
            self._require(operation, "boot-copy VMA", vma, kind.vma_access | Access.WRITE)
        self._check_placement(name, vma, size, offset)

        section = Section(name=name, kind=kind, vma=vma, lma=lma, size=size, offset=offset)
        self._sections.put(section)
        self._state = LayoutState.POPULATED
        return section

    def _require(self, operation: str, role: str, region: MemoryRegion, required: Access) -> None:
        if region not in self._registry:
            raise UnknownRegionError(region.name)
        if not region.provides(required):
            raise CapabilityError(
                operation=f"{role} of {operation}",
                region=region.name,
                required=str(required),
                provided=region.kind.name,
            )

    @staticmethod
    def _check_placement(
        name: str, vma: MemoryRegion, size: Optional[int], offset: Optional[int]
    ) -> None:
        if size is not None and size <= 0:
            raise InvalidSectionError(name, "size must be > 0")
        if size is not None and size > vma.size:
            raise InvalidSectionError(
                name, f"size {format_size(size)} exceeds region '{vma.name}'"
            )
        if offset is None:
            return
        if not 0 <= offset < vma.size:
            raise InvalidSectionError(
                name, f"offset 0x{offset:X} is outside region '{vma.name}'"
            )
        if size is not None and offset + size > vma.size:
            raise InvalidSectionError(
                name, f"offset 0x{offset:X} + size {format_size(size)} runs past region '{vma.name}'"
            )

    def _check_region_usage(self) -> None:
        """Declared sizes placed in a region must fit in it."""
        usage: dict[str, int] = defaultdict(int)
        for section in self._sections.ordered():
            if section.size is None:
                continue
            usage[section.vma.name] += section.size
            if section.is_boot_copy:
                usage[section.lma.name] += section.size

        for region in self._registry.regions:
            used = usage.get(region.name, 0)
            if used > region.size:
                raise IncompleteLayoutError(
                    f"Sections placed in region '{region.name}' need "
                    f"{format_size(used)} but the region holds {format_size(region.size)}",
                    details={"region": region.name, "used": used, "size": region.size},
                )

    def _check_fixed_placements(self) -> None:
        """Sections pinned by offset and size must not share bytes."""
        placed: list[tuple[Section, AddressRange]] = []
        for section in self._sections.ordered():
            if section.offset is None or section.size is None:
                continue
            extent = AddressRange(section.vma.base + section.offset, section.size)
            for other, other_extent in placed:
                if other.vma == section.vma and extent.overlaps(other_extent):
                    raise IncompleteLayoutError(
                        f"Section '{section.name}' at {extent} overlaps section "
                        f"'{other.name}' at {other_extent} in region '{section.vma.name}'",
                        details={"sections": [other.name, section.name]},
                    )
            placed.append((section, extent))

    def _check_mutable(self) -> None:
        if self._state is LayoutState.GENERATED:
            raise LayoutFrozenError(f"Layout '{self.name}' was already generated")

    @staticmethod
    def _write_file(out_dir: Path, filename: str, text: str) -> Path:
        path = out_dir / filename
        try:
            out_dir.mkdir(parents=True, exist_ok=True)
            path.write_text(text, encoding="utf-8")
        except OSError as exc:
            logger.error(f"Failed to write {path}: {exc}")
            raise GenerationError(str(path), f"Failed to write {path}: {exc}") from exc
        logger.info(f"Wrote {path}")
        return path
