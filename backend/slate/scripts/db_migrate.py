import subprocess
import sys

from sqlalchemy import create_engine, inspect

from slate.core.config import settings

CORE_TABLES = ("users", "presentations", "share_grants", "share_links")


def sync_url(url: str) -> str:
    return url.replace("+aiosqlite", "")


def migrate(run=subprocess.run):
    """Stamp databases created by ``create_all`` before Alembic, then upgrade to head."""
    engine = create_engine(sync_url(settings.DATABASE_URL))
    insp = inspect(engine)

    has_alembic = insp.has_table("alembic_version")
    existing_core_tables = any(insp.has_table(t) for t in CORE_TABLES)
    engine.dispose()

    if existing_core_tables and not has_alembic:
        print("[db-migrate] Existing tables detected without alembic_version -> stamping head")
        run(["alembic", "stamp", "head"], check=True)
    else:
        print(f"[db-migrate] has_alembic={has_alembic}, existing_core_tables={existing_core_tables}")

    run(["alembic", "upgrade", "head"], check=True)


def main():
    try:
        migrate()
    except subprocess.CalledProcessError as e:
        print(f"[db-migrate] Alembic command failed: {e}", file=sys.stderr)
        sys.exit(e.returncode)
    except Exception as e:
        print(f"[db-migrate] Unexpected error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
