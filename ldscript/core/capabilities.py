"""Region access rights.

A region is created with exactly one RegionKind (RW, RX or RWX), which never
changes afterwards. Placement operations ask for a minimum set of Access
rights and reject regions that do not provide them.
"""

from __future__ import annotations

from enum import Enum, Flag, auto


class Access(Flag):
    """Independent access markers."""

    NONE = 0
    READ = auto()
    WRITE = auto()
    EXECUTE = auto()

    def __str__(self) -> str:
        if not self:
            return "NONE"
        return "".join(
            letter
            for flag, letter in ((Access.READ, "R"), (Access.WRITE, "W"), (Access.EXECUTE, "X"))
            if flag in self
        )


class RegionKind(Enum):
    """The canonical access combinations a region can be created with."""

    RW = Access.READ | Access.WRITE
    RX = Access.READ | Access.EXECUTE
    RWX = Access.READ | Access.WRITE | Access.EXECUTE

    @property
    def access(self) -> Access:
        return self.value

    def provides(self, required: Access) -> bool:
        """True if every right in `required` is granted by this kind."""
        return (self.value & required) == required

    @property
    def linker_attributes(self) -> str:
        """Attribute string for a GNU ld MEMORY entry (e.g. "rx")."""
        return self.name.lower()

    @classmethod
    def from_string(cls, text: str) -> RegionKind:
        """Parse "RX", "rw", "RWX"... Raises ValueError on anything else."""
        try:
            return cls[text.strip().upper()]
        except KeyError as exc:
            valid = ", ".join(kind.name for kind in cls)
            raise ValueError(f"access must be one of {valid}, got {text!r}") from exc
