"""
UI components for pg_here.
"""

from .console import ConsoleUI, setup_logging

__all__ = [
    'ConsoleUI',
    'setup_logging',
]
