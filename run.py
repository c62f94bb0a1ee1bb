#!/usr/bin/env python3
"""Convenience runner for the route progress CLI.

Usage:
    python run.py status
    python run.py sync
"""
import sys

from route_progress.main import main

if __name__ == "__main__":
    sys.exit(main())
