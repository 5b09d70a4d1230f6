"""Allow ``python -m dbmcp``."""
import sys

from .cli import main

sys.exit(main())
