from migrate_tool import define_config
from migrate_tool.db import SurrealConfig
from migrate_tool.strategies import SurrealDBStrategy, SurrealStrategyOptions

config = define_config(
    strategy=SurrealDBStrategy(
        SurrealStrategyOptions(
            connection=SurrealConfig(
                url="ws://localhost:8000/rpc",
                namespace="migrate",
                database="example",
            ),
            lock_table="migrate_lock",
            changelog_table="migrate_changelog",
        )
    ),
    migrations_dir="migrations",
)
