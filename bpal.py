#!/usr/bin/env python3
"""
bpal - Blorb BPal builder

Runs the command line tool from a source checkout.

Usage:
    python bpal.py <blorb.blb> [<story.z6>]
"""

import sys
from pathlib import Path

# Setup paths
root_dir = Path(__file__).parent
src_dir = root_dir / "src"
sys.path.insert(0, str(src_dir))

from blorbpal.cli import main


if __name__ == "__main__":
    sys.exit(main())
