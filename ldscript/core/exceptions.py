"""Custom exceptions used throughout the ldscript package."""

from typing import Any, Optional

from ldscript.utils.consts import format_address


class LayoutError(Exception):
    """Base exception for all layout errors.

    Every ldscript-specific exception inherits from this class, so callers
    can catch all of them with a single except clause.
    """

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        """Initialize the exception.

        Args:
            message: Human-readable error message
            details: Additional context about the error
        """

        super().__init__(message)
        self.details = details or {}


class ConfigurationError(LayoutError):
    """Raised when a layout description or a placement request is invalid.

    This includes:
    - Unknown or missing attributes in a declarative description
    - Missing or duplicated MemoryRegions / Sections groups
    - References to undeclared regions
    - Region handles lacking a capability required by a placement
    """

    def __init__(
        self,
        config_key: Optional[str] = None,
        message: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        """Initialize configuration error.

        Args:
            config_key: Dotted path of the offending element (e.g.
                "MemoryRegions.Flash.size")
            message: Description of what's wrong. If omitted, config_key is
                treated as the message and the key defaults to "configuration".
            details: Additional context
        """
        if message is None:
            message = config_key or "Invalid configuration"
            config_key = "configuration"
        if config_key is None:
            config_key = "configuration"

        full_message = f"Configuration error for '{config_key}': {message}"
        super().__init__(message=full_message, details=details)
        self.config_key = config_key


class CapabilityError(ConfigurationError):
    """Raised when a region lacks an access right a placement requires.

    Examples:
    - Placing the VMA of .text in a region without EXECUTE
    - Placing .bss in a read/execute flash region
    """

    def __init__(
        self,
        operation: str,
        region: str,
        required: str,
        provided: str,
        details: Optional[dict[str, Any]] = None,
    ):
        details = details or {}
        details.update({"required": required, "provided": provided})
        message = (
            f"region '{region}' is {provided} but {operation} requires {required}"
        )
        super().__init__(config_key=operation, message=message, details=details)
        self.operation = operation
        self.region = region
        self.required = required
        self.provided = provided


class RegionError(LayoutError):
    """Base exception for memory region registration errors."""

    def __init__(
        self,
        message: str,
        region: Optional[str] = None,
        base: Optional[int] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        if base is not None:
            details = details or {}
            details["base"] = format_address(base)

        super().__init__(message=message, details=details)
        self.region = region
        self.base = base


class OverlappingRegionError(RegionError):
    """Raised when a new region intersects an already registered one.

    The layout stays usable; the rejected region is simply not added.
    """

    def __init__(
        self,
        region: str,
        base: int,
        size: int,
        conflicting_id: str,
        details: Optional[dict[str, Any]] = None,
    ):
        message = (
            f"Region '{region}' at {format_address(base)}-"
            f"{format_address(base + size)} overlaps region '{conflicting_id}'"
        )
        super().__init__(message=message, region=region, base=base, details=details)
        self.size = size
        self.conflicting_id = conflicting_id


class InvalidRegionError(RegionError):
    """Raised when a region's extent is not representable.

    Examples:
    - size is zero or negative
    - base + size runs past the end of the 32-bit address space
    """

    def __init__(
        self,
        region: str,
        base: int,
        size: int,
        reason: str,
        details: Optional[dict[str, Any]] = None,
    ):
        message = f"Invalid region '{region}': {reason}"
        super().__init__(message=message, region=region, base=base, details=details)
        self.size = size


class UnknownRegionError(RegionError):
    """Raised when a region handle was not registered with this layout."""

    def __init__(self, region: str, details: Optional[dict[str, Any]] = None):
        message = f"Region '{region}' is not registered with this layout"
        super().__init__(message=message, region=region, details=details)


class InvalidSectionError(LayoutError):
    """Raised when a section's size or offset does not fit its region."""

    def __init__(
        self,
        section: str,
        reason: str,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(f"Invalid section '{section}': {reason}", details=details)
        self.section = section


class IncompleteLayoutError(LayoutError):
    """Raised by generate() when the layout cannot describe a bootable image.

    Examples:
    - No vector table section (no reset/entry vector)
    - Two regions sharing a name
    - Declared section sizes exceeding their region
    """


class LayoutFrozenError(LayoutError):
    """Raised when a generated layout is modified or generated again."""


class GenerationError(LayoutError):
    """Raised when writing generated files fails."""

    def __init__(
        self,
        path: str,
        message: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        if message is None:
            message = f"Failed to write {path}"
        details = details or {}
        details["path"] = path
        super().__init__(message=message, details=details)
        self.path = path
