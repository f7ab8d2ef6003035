"""Allow ``python -m udp_fan``."""

from .cli import main

raise SystemExit(main())
