"""Utilities for building layouts from declarative descriptions.

This module replaces hand-written registration calls with a loader-driven
path: a LayoutConfig (see ldscript.utils.config_loader) is replayed through
the ordinary MemoryLayout registration API, so every overlap and capability
check applies exactly as it does for code-built layouts.
"""

from typing import Optional

from ldscript.core.address_space import MemoryRegion
from ldscript.core.exceptions import InvalidSectionError
from ldscript.core.layout import MemoryLayout
from ldscript.core.sections import SectionKind
from ldscript.utils.config_loader import LayoutConfig, SectionConfig, load_config


def create_layout_from_config(layout_config: LayoutConfig) -> MemoryLayout:
    """Create a populated MemoryLayout from a layout configuration.

    Args:
        layout_config: Validated regions and sections

    Returns:
        A new MemoryLayout, not yet generated

    Raises:
        OverlappingRegionError, CapabilityError, InvalidSectionError: as
            raised by the registration API
    """
    layout = MemoryLayout(layout_config.name)

    handles: dict[str, MemoryRegion] = {}
    for region in layout_config.regions:
        handles[region.name] = layout.add_region(
            region.name, region.address, region.size, region.access
        )

    for section in layout_config.sections:
        _place_section(layout, section, handles[section.vma], handles[section.lma])

    return layout


def create_layout(target_name: str, path: Optional[str] = None) -> MemoryLayout:
    """Load a target description and build a fresh layout from it."""
    return create_layout_from_config(load_config(target_name, path=path))


def _place_section(
    layout: MemoryLayout,
    section: SectionConfig,
    vma: MemoryRegion,
    lma: MemoryRegion,
) -> None:
    kind = section.kind
    if kind is SectionKind.VECTOR_TABLE:
        layout.vector_table(vma, offset=section.offset, size=section.size, name=section.name)
    elif kind is SectionKind.TEXT:
        layout.text(vma, lma, size=section.size, name=section.name)
    elif kind is SectionKind.DATA:
        layout.data(vma, lma, size=section.size, name=section.name)
    elif kind is SectionKind.RAMFUNC:
        layout.ramfunc(vma, lma, size=section.size, name=section.name)
    elif kind is SectionKind.BSS:
        layout.bss(vma, size=section.size, name=section.name)
    elif kind is SectionKind.STACK:
        if section.size is None:
            raise InvalidSectionError(section.name, "stack sections need a size")
        layout.stack(vma, section.size, name=section.name)
    else:
        layout.custom_section(
            section.name, vma, lma, size=section.size, offset=section.offset
        )
