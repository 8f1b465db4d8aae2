from __future__ import annotations

import sys

from charmref.cli import main

raise SystemExit(main(sys.argv[1:]))
