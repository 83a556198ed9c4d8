"""USB Billboard debug tool — log console and register shell."""

from .__version__ import __version__

__all__ = ["__version__"]
