"""Allow running as python -m randomfs_cli."""

from .cli import main

main()
