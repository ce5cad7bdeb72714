"""Constants and utility values for layout descriptions."""


class ConstUtils:
    """Address-space limits and size units."""

    # Target address space is 32 bits wide
    ADDRESS_MAX = 0xFFFFFFFF
    """Highest addressable byte: 0xFFFFFFFF"""

    ADDRESS_SPACE_SIZE = 0x1_0000_0000
    """Total size of the 32-bit address space (4 GiB)."""

    # Size units
    BYTE = 1
    KILOBYTE = 1024
    """1 KiB. Linker scripts use binary units for K and M."""

    MEGABYTE = 1024 * 1024
    """1 MiB."""

    # Default section alignment inside generated output sections
    SECTION_ALIGNMENT = 4


SIZE_UNITS: dict[str, int] = {
    "": ConstUtils.BYTE,
    "b": ConstUtils.BYTE,
    "byte": ConstUtils.BYTE,
    "bytes": ConstUtils.BYTE,
    "k": ConstUtils.KILOBYTE,
    "kb": ConstUtils.KILOBYTE,
    "kib": ConstUtils.KILOBYTE,
    "kilobyte": ConstUtils.KILOBYTE,
    "kilobytes": ConstUtils.KILOBYTE,
    "m": ConstUtils.MEGABYTE,
    "mb": ConstUtils.MEGABYTE,
    "mib": ConstUtils.MEGABYTE,
    "megabyte": ConstUtils.MEGABYTE,
    "megabytes": ConstUtils.MEGABYTE,
}


def bytes_(count: int) -> int:
    """Size of `count` bytes."""
    return count * ConstUtils.BYTE


def kilobytes(count: int) -> int:
    """Size of `count` KiB."""
    return count * ConstUtils.KILOBYTE


def megabytes(count: int) -> int:
    """Size of `count` MiB."""
    return count * ConstUtils.MEGABYTE


def format_address(value: int) -> str:
    """Format an address the way linker scripts and error messages show it."""
    return f"0x{value:08X}"


def format_size(value: int) -> str:
    """Human-readable size: whole KiB/MiB when exact, hex bytes otherwise."""
    if value and value % ConstUtils.MEGABYTE == 0:
        return f"{value // ConstUtils.MEGABYTE}M"
    if value and value % ConstUtils.KILOBYTE == 0:
        return f"{value // ConstUtils.KILOBYTE}K"
    return f"0x{value:X}"
