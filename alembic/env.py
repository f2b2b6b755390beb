"""
Alembic Environment Configuration for SQLModel

This module configures Alembic to work with the dashboard's SQLModel models
and selects the database from the MODE setting in dashboard/config.ini.
"""

from logging.config import fileConfig
from sqlalchemy import engine_from_config, pool
from alembic import context
import sys
from pathlib import Path

# Add the parent directory to the path so we can import the dashboard package
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from dashboard.settings import MODE, get_database_url

# Import SQLModel base and all models
from sqlmodel import SQLModel
from dashboard.logics.db import MemberAnnotationModel  # noqa: F401

# this is the Alembic Config object, which provides
# access to the values within the .ini file in use.
config = context.config

# Interpret the config file for Python logging.
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

db_url = get_database_url()
print(f"[Alembic] Using {MODE.upper()} mode")

# Override the sqlalchemy.url in alembic.ini with our dynamic URL
# Escape % as %% for Alembic's config parser (it interprets % as interpolation)
config.set_main_option("sqlalchemy.url", db_url.replace("%", "%%"))

target_metadata = SQLModel.metadata


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode (emit SQL without a DBAPI connection)."""
    url = config.get_main_option("sqlalchemy.url")

    # Check if we're using SQLite
    is_sqlite = url and url.startswith("sqlite")

    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,  # Detect column type changes
        compare_server_default=True,  # Detect default value changes
        render_as_batch=is_sqlite,  # Enable batch mode for SQLite
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations in 'online' mode against a live connection."""
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    url = config.get_main_option("sqlalchemy.url")
    is_sqlite = url and url.startswith("sqlite")

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            compare_server_default=True,
            render_as_batch=is_sqlite,
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
