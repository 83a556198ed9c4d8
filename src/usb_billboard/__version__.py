"""USB Billboard debug tool version information."""

__version__ = "0.2.0"
__version_info__ = tuple(int(x) for x in __version__.split("."))

# Version history:
# 0.1.0 - Log console and register shell over vendor control transfers
# 0.2.0 - 200 ms transfer timeout, configurable log chunk size (8/64),
#         echo filter can be disabled, u8/u16 range checks in the shell
