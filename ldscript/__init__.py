"""Firmware memory layout modelling and linker script generation.

This package models the memory layout of an embedded firmware image: named
address-space regions with access rights, and the sections placed into them
with distinct load (LMA) and execution (VMA) addresses. Layouts are checked
for overlapping regions and capability violations, then rendered as a GNU ld
linker script plus startup glue.

Getting started:
    from ldscript import create_layout

    layout = create_layout("stm32f4")
    layout.generate("build/")
"""

from ldscript.core.address_space import AddressRange, MemoryRegion
from ldscript.core.builders import create_layout, create_layout_from_config
from ldscript.core.capabilities import Access, RegionKind
from ldscript.core.exceptions import (
    CapabilityError,
    ConfigurationError,
    GenerationError,
    IncompleteLayoutError,
    LayoutError,
    LayoutFrozenError,
    OverlappingRegionError,
)
from ldscript.core.layout import LayoutState, MemoryLayout
from ldscript.core.sections import Section, SectionKind
from ldscript.gnu import GnuLdSerializer
from ldscript.interfaces.serializer import LayoutSerializer
from ldscript.utils.config_loader import (
    list_available_targets,
    load_config,
    parse_layout_config,
)
from ldscript.utils.consts import bytes_, kilobytes, megabytes

__all__ = [
    # Model
    "Access",
    "RegionKind",
    "AddressRange",
    "MemoryRegion",
    "Section",
    "SectionKind",
    "LayoutState",
    "MemoryLayout",
    # Sizes
    "bytes_",
    "kilobytes",
    "megabytes",
    # Loading
    "load_config",
    "parse_layout_config",
    "list_available_targets",
    "create_layout",
    "create_layout_from_config",
    # Output
    "LayoutSerializer",
    "GnuLdSerializer",
    # Errors
    "LayoutError",
    "ConfigurationError",
    "CapabilityError",
    "OverlappingRegionError",
    "IncompleteLayoutError",
    "LayoutFrozenError",
    "GenerationError",
]
