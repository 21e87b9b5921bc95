#!/usr/bin/env python3
"""
Enable running roadmap-status via: python -m roadmap_status

Usage:
    python -m roadmap_status run --owner acme --repo app
    python -m roadmap_status normalize docs/roadmap.yml
"""

import sys

from roadmap_status.cli import main

if __name__ == "__main__":
    sys.exit(main())
