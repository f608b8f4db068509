"""
Entry point for `python -m scansign`.

Usage:
    python -m scansign sign /srv/scans/scanner1/maria
    python -m scansign sign --scanner scanner1 --user maria
    python -m scansign setup
"""

from .ui.cli import main

main()
