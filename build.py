#!/usr/bin/env python3
from __future__ import annotations

import sys

try:
    from docsite.cli import main
except ImportError as exc:
    print(f"Missing dependency: {exc.name}. Install with pip install -e .", file=sys.stderr)
    sys.exit(1)


if __name__ == "__main__":
    main()
