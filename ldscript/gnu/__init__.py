"""GNU ld output format.

Renders validated layouts as GNU ld linker scripts plus C startup glue.
"""

from .serializer import GnuLdSerializer

__all__ = ["GnuLdSerializer"]
