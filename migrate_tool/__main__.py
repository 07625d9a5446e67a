"""Entry point for running the migration tool as a module.

Usage:
    python -m migrate_tool latest
    python -m migrate_tool rollback
    python -m migrate_tool status
    python -m migrate_tool create add_users
"""

from .cli import main

if __name__ == "__main__":
    main()
