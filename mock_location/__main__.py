#!/usr/bin/env python3
"""
Main entry point for the mock_location package.
Runs the command-line simulator when the package is run directly.
"""

import sys

if __name__ == "__main__":
    try:
        # Try relative import first (when run as module)
        from .cli import main
    except ImportError:
        # Fall back to absolute import (when run as script)
        from mock_location.cli import main

    sys.exit(main())
