"""
litepush Command Line Interface.

Provides schema push commands:
- plan: Show the statements needed to reach the models' schema
- push: Apply them to the database in one transaction
"""

from .commands import cli, main

__all__ = ["cli", "main"]
