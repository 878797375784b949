#!/usr/bin/env python3
"""clusterplan CLI entrypoint -- run without pip install.

Usage:
    python cprun.py plan --preset large --scale 1000
    python cprun.py --help
"""

import sys
from pathlib import Path

# Add src/ to import path so the clusterplan package is importable
sys.path.insert(0, str(Path(__file__).resolve().parent / "src"))

from clusterplan.cli import app

if __name__ == "__main__":
    app()
