"""Interface abstractions for ldscript.

Defines behavioral contracts that output formats must satisfy:
- LayoutSerializer: renders a validated MemoryLayout to files
"""

from ldscript.interfaces.serializer import LayoutSerializer

__all__ = [
    "LayoutSerializer",
]
