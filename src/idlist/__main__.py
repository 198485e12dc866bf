from __future__ import annotations

import sys

from idlist.cli import main

sys.exit(main())
