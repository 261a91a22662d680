"""Allow `python -m treesync`."""

import sys

from .app import main

sys.exit(main())
