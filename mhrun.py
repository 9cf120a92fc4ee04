#!/usr/bin/env python3
"""minihive CLI entrypoint -- run without pip install.

Usage:
    python mhrun.py up
    python mhrun.py --help
"""

import sys
from pathlib import Path

# Add src/ to import path so the minihive package is importable
sys.path.insert(0, str(Path(__file__).resolve().parent / "src"))

from minihive.cli import main

if __name__ == "__main__":
    main()
