"""Allow ``python -m pattern_catalog``."""

from .cli import main

raise SystemExit(main())
