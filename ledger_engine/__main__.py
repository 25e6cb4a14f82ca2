"""Entry point for `python -m ledger_engine`."""

import sys

from .cli import main

sys.exit(main())
