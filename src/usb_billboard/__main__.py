"""Allow ``python -m usb_billboard``."""

import sys

from .cli import main

sys.exit(main())
