"""Alembic environment for the nom035 schema.

Migrations run synchronously over psycopg2.  The target database is
``get_sync_url()`` unless overridden on the command line::

    alembic -x url=postgresql://user:pw@host/db upgrade head

Autogenerate compares column types too, and an autogenerate run that
detects no changes writes no revision file.
"""

from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

import nom035_db.models  # noqa: F401  (registers every table on Base.metadata)
from nom035_db.config import get_sync_url
from nom035_db.models.base import Base

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

config.set_main_option(
    "sqlalchemy.url", context.get_x_argument(as_dictionary=True).get("url") or get_sync_url()
)

target_metadata = Base.metadata


def _skip_empty_autogenerate(context_, revision, directives) -> None:
    if getattr(config.cmd_opts, "autogenerate", False):
        script = directives[0]
        if script.upgrade_ops.is_empty():
            directives[:] = []


def run_migrations_offline() -> None:
    """Emit SQL to stdout (``alembic upgrade head --sql``)."""
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        literal_binds=True,
        compare_type=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            process_revision_directives=_skip_empty_autogenerate,
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
