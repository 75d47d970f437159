"""
Entry point for running pg_here as a module.

Usage:
    python -m pg_here snapshot ./pg_projects/default
"""

from .cli import main

if __name__ == "__main__":
    main()
