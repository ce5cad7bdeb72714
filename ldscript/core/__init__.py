"""Core modules for ldscript.

Layout model and validation:
- capabilities: Access rights and region kinds (RW, RX, RWX)
- address_space: Address ranges and memory regions
- memmap: Region registry and overlap checking
- sections: Section placement descriptors and the section table
- layout: MemoryLayout, the builder aggregate handed to serializers
- builders: MemoryLayout construction from declarative configuration
"""

from ldscript.core.address_space import AddressRange, MemoryRegion
from ldscript.core.builders import create_layout, create_layout_from_config
from ldscript.core.capabilities import Access, RegionKind
from ldscript.core.exceptions import (
    CapabilityError,
    ConfigurationError,
    GenerationError,
    IncompleteLayoutError,
    InvalidRegionError,
    InvalidSectionError,
    LayoutError,
    LayoutFrozenError,
    OverlappingRegionError,
    RegionError,
    UnknownRegionError,
)
from ldscript.core.layout import LayoutState, MemoryLayout
from ldscript.core.memmap import RegionRegistry
from ldscript.core.sections import Section, SectionKind, SectionTable

__all__ = [
    # Capabilities
    "Access",
    "RegionKind",
    # Regions
    "AddressRange",
    "MemoryRegion",
    "RegionRegistry",
    # Sections
    "Section",
    "SectionKind",
    "SectionTable",
    # Layout
    "LayoutState",
    "MemoryLayout",
    "create_layout",
    "create_layout_from_config",
    # Errors
    "LayoutError",
    "ConfigurationError",
    "CapabilityError",
    "RegionError",
    "OverlappingRegionError",
    "InvalidRegionError",
    "UnknownRegionError",
    "InvalidSectionError",
    "IncompleteLayoutError",
    "LayoutFrozenError",
    "GenerationError",
]
