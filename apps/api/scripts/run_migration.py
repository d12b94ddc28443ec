"""
Run the credits migration against the configured PostgreSQL database.

Reads DB_* credentials from the environment (or apps/api/.env), applies the
credits revision in a single transaction, then verifies the resulting schema.

Usage:
    python scripts/run_migration.py
"""

import asyncio
import sys
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

# Add parent dir to path to find config/database/schema_sql
API_DIR = Path(__file__).resolve().parent.parent
sys.path.append(str(API_DIR))

from alembic.migration import MigrationContext
from alembic.operations import Operations
from alembic.script import ScriptDirectory
from sqlalchemy import inspect, text
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import AsyncEngine

from config import Settings, get_database_url
from database import build_engine


CREDITS_REVISION = "20251124_000003"
ALEMBIC_DIR = API_DIR / "alembic"
ENV_PATH = API_DIR / ".env"

VERIFICATION_CHECKS: List[Tuple[str, str, Optional[str]]] = [
    ("plan column", "users", "plan"),
    ("credits column", "users", "credits"),
    ("credit_transactions table", "credit_transactions", None),
    ("payments table", "payments", None),
]

USER_STATS_SQL = """
SELECT COUNT(*) AS total,
       COUNT(CASE WHEN plan IS NOT NULL THEN 1 END) AS with_plan,
       COUNT(CASE WHEN credits > 0 THEN 1 END) AS with_credits
FROM users
"""


def load_revision(revision: str = CREDITS_REVISION) -> Any:
    """Import a revision module from the Alembic versions directory."""
    script = ScriptDirectory(str(ALEMBIC_DIR)).get_revision(revision)
    if script is None:
        raise LookupError(f"Unknown migration revision: {revision}")
    return script.module


def apply_revision(connection: Connection, module: Any) -> None:
    """Run a revision's upgrade() on an open connection without touching alembic_version."""
    context = MigrationContext.configure(connection)
    with Operations.context(context):
        module.upgrade()


def check_schema(connection: Connection) -> List[Tuple[str, bool]]:
    """Each check runs on its own so one missing object never hides another."""
    inspector = inspect(connection)
    results = []
    for name, table, column in VERIFICATION_CHECKS:
        try:
            if column is None:
                present = inspector.has_table(table)
            else:
                present = inspector.has_table(table) and any(
                    col["name"] == column for col in inspector.get_columns(table)
                )
        except Exception as exc:
            print(f"   ⚠️ {name}: check failed ({exc})")
            present = False
        results.append((name, present))
    return results


def collect_user_stats(connection: Connection) -> Dict[str, int]:
    row = connection.execute(text(USER_STATS_SQL)).mappings().one()
    return {key: int(row[key] or 0) for key in ("total", "with_plan", "with_credits")}


def describe_error(exc: BaseException) -> Tuple[str, Optional[str], Optional[str]]:
    """Unwrap the DBAPI error behind a SQLAlchemy exception into (message, code, detail)."""
    candidates = [exc]
    orig = getattr(exc, "orig", None)
    if orig is not None:
        candidates.append(orig)
        if orig.__cause__ is not None:
            candidates.append(orig.__cause__)

    code = None
    detail = None
    for candidate in candidates:
        code = code or getattr(candidate, "sqlstate", None) or getattr(candidate, "pgcode", None)
        detail = detail or getattr(candidate, "detail", None)
    source = orig if orig is not None else exc
    lines = str(source).strip().splitlines()
    message = lines[0] if lines else repr(source)
    return message, code, detail


def _print_troubleshooting() -> None:
    print("\n💡 Troubleshooting:", file=sys.stderr)
    print("   - Make sure database credentials in .env are correct", file=sys.stderr)
    print("   - Ensure the base schema has been applied first (alembic upgrade 20251110_000002)", file=sys.stderr)
    print("   - Check database user has CREATE TABLE and ALTER TABLE permissions\n", file=sys.stderr)


async def run_migration(
    engine: AsyncEngine,
    module: Any,
    *,
    apply: Callable[[Connection, Any], None] = apply_revision,
) -> int:
    """Connect, migrate, verify. Returns the process exit status."""
    try:
        print("\n🔌 Connecting to database...")
        url = engine.url
        print(f"   Host: {url.host or 'local'}")
        print(f"   Database: {url.database}")
        print(f"   User: {url.username or '-'}")

        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        print("✅ Connected to database successfully\n")

        print("🚀 Running migration...\n")
        async with engine.begin() as conn:
            await conn.run_sync(apply, module)
        print("\n✅ Migration completed successfully!")

        print("\n📊 Verifying migration...\n")
        async with engine.connect() as conn:
            results = await conn.run_sync(check_schema)
            for name, present in results:
                if present:
                    print(f"   ✅ {name}: OK")
                else:
                    print(f"   ❌ {name}: MISSING")

            stats = await conn.run_sync(collect_user_stats)
        print("\n📈 User Statistics:")
        print(f"   Total users: {stats['total']}")
        print(f"   Users with plan: {stats['with_plan']}")
        print(f"   Users with credits: {stats['with_credits']}")

        print("\n✨ Migration verification complete!\n")
        print("💡 Next steps:")
        print("   1. Restart your server")
        print("   2. Test by creating a new user account")
        print("   3. Check /api/credits/balance endpoint\n")
        return 0
    except Exception as exc:
        message, code, detail = describe_error(exc)
        print(f"\n❌ Migration failed: {message}", file=sys.stderr)
        if code:
            print(f"   Error code: {code}", file=sys.stderr)
        if detail:
            print(f"   Detail: {detail}", file=sys.stderr)
        _print_troubleshooting()
        return 1
    finally:
        await engine.dispose()


async def main() -> int:
    config = Settings(_env_file=ENV_PATH if ENV_PATH.exists() else None)
    try:
        module = load_revision()
        print(f"✅ Migration loaded: {module.__file__}")
    except Exception as exc:
        print(f"❌ Error reading migration: {exc}", file=sys.stderr)
        return 1

    engine = build_engine(get_database_url(config))
    return await run_migration(engine, module)


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
