"""Entry point for ``python -m bdf_driver``."""

from .driver import main

raise SystemExit(main())
