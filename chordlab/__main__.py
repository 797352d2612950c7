"""Allow ``python -m chordlab``."""

import sys

from .cli import main

sys.exit(main())
