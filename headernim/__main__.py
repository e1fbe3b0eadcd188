"""Allow ``python -m headernim``."""

import sys

from headernim.cli import main

sys.exit(main())
