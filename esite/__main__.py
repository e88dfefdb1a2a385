"""Allow running as `python -m esite`."""

import sys

from esite.cli import main

sys.exit(main())
