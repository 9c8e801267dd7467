import os
import sys
from logging.config import fileConfig
from sqlalchemy import engine_from_config, pool
from alembic import context

# --- Ensure the repo root is on sys.path so "import albumrank.***" always works ---
here = os.path.dirname(__file__)
repo_root = os.path.abspath(os.path.join(here, ".."))
if repo_root not in sys.path:
    sys.path.insert(0, repo_root)

config = context.config

# Logging (optional)
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# Import models *after* sys.path fix
from albumrank.core.config import settings  # noqa: E402
from albumrank.db.models import Base  # noqa: E402

# DATABASE_URL from env wins over alembic.ini
config.set_main_option("sqlalchemy.url", settings.database_url)

target_metadata = Base.metadata

def run_migrations_offline():
    url = config.get_main_option("sqlalchemy.url")
    context.configure(url=url, target_metadata=target_metadata, literal_binds=True)
    with context.begin_transaction():
        context.run_migrations()

def run_migrations_online():
    connectable = engine_from_config(
        config.get_section(config.config_ini_section),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        # batch mode lets ALTERs work on SQLite
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            render_as_batch=connection.dialect.name == "sqlite",
        )
        with context.begin_transaction():
            context.run_migrations()

if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
