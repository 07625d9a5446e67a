"""Migration file: 20250706034848963512-create_user_table.py"""


async def up(db):
    """Create the user table.

    Args:
        db: The SurrealDB connection (migrate_tool.db.Connection).
    """
    await db.query(
        """
        DEFINE TABLE IF NOT EXISTS user SCHEMAFULL;
        DEFINE FIELD IF NOT EXISTS email ON TABLE user TYPE string;
        DEFINE FIELD IF NOT EXISTS name ON TABLE user TYPE string;
        DEFINE INDEX IF NOT EXISTS idx_user_email ON TABLE user COLUMNS email UNIQUE;
        """
    )


async def down(db):
    """Drop the user table.

    Args:
        db: The SurrealDB connection (migrate_tool.db.Connection).
    """
    await db.query("REMOVE TABLE IF EXISTS user;")
