#!/usr/bin/env python3
"""
Kolibri Stats Watcher
Entry point for ``python -m stats_watcher.main``
"""
from .cli import main

if __name__ == "__main__":
    main()
