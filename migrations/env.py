# migrations/env.py

import os
import sys
from logging.config import fileConfig

from sqlalchemy import engine_from_config, pool
from alembic import context

# Ajuste do caminho para importar o pacote taskflow
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from taskflow.adapters.configuration.config import settings
from taskflow.adapters.outbound.persistence.models import Base

# Metadata com as tabelas users e refresh_tokens
target_metadata = Base.metadata

# Configuração de logging
fileConfig(context.config.config_file_name)

# Drivers assíncronos da aplicação -> drivers síncronos usados pelo Alembic
_SYNC_DRIVERS = {
    "+asyncpg": "+psycopg2",
    "+aiosqlite": "",
}


def get_sync_url() -> str:
    """
    URL síncrona para as migrações.

    `alembic -x db_url=...` tem precedência sobre DATABASE_URL.
    """
    url = context.get_x_argument(as_dictionary=True).get("db_url") or str(settings.DATABASE_URL)
    for async_driver, sync_driver in _SYNC_DRIVERS.items():
        url = url.replace(async_driver, sync_driver)
    return url


def run_migrations_offline() -> None:
    """
    Run migrations in 'offline' mode (emit SQL without a connection).
    """
    context.configure(
        url=get_sync_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """
    Run migrations with a synchronous engine.
    """
    configuration = context.config.get_section(context.config.config_ini_section) or {}
    configuration["sqlalchemy.url"] = get_sync_url()

    connectable = engine_from_config(
        configuration,
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            render_as_batch=connection.dialect.name == "sqlite",
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
