"""PostgreSQL functions, triggers and data repairs shared by the Alembic revisions.

Every statement here is re-runnable: functions use CREATE OR REPLACE, triggers
are dropped before being recreated, and data repairs carry NOT EXISTS guards.
Each constant holds exactly one statement so it can be sent through asyncpg.
"""

from typing import List


# Allowance written into the trigger and backfill; services grant the same amount.
FREE_INITIAL_CREDITS = 3

UUID_EXTENSION = 'CREATE EXTENSION IF NOT EXISTS "uuid-ossp"'

UPDATE_UPDATED_AT_FUNCTION = """
CREATE OR REPLACE FUNCTION update_updated_at_column()
RETURNS TRIGGER AS $$
BEGIN
  NEW.updated_at = NOW();
  RETURN NEW;
END;
$$ LANGUAGE plpgsql
"""

INCREMENT_DAILY_USAGE_FUNCTION = """
CREATE OR REPLACE FUNCTION increment_daily_usage(user_id UUID)
RETURNS void AS $$
BEGIN
  UPDATE users
  SET daily_usage_count = daily_usage_count + 1
  WHERE id = user_id;
END;
$$ LANGUAGE plpgsql
"""

ADD_ROLE_COLUMN = """
DO $$
BEGIN
    IF NOT EXISTS (
        SELECT 1 FROM information_schema.columns
        WHERE table_name = 'users' AND column_name = 'role'
    ) THEN
        ALTER TABLE users ADD COLUMN role TEXT NOT NULL DEFAULT 'user' CHECK (role IN ('user', 'admin'));
    END IF;
END $$
"""

ADD_CREDITS_COLUMNS = """
ALTER TABLE users
ADD COLUMN IF NOT EXISTS plan TEXT NOT NULL DEFAULT 'FREE' CHECK (plan IN ('FREE', 'PAY_PER_USE', 'PRO')),
ADD COLUMN IF NOT EXISTS credits INTEGER NOT NULL DEFAULT 0,
ADD COLUMN IF NOT EXISTS pro_since TIMESTAMPTZ,
ADD COLUMN IF NOT EXISTS pro_until TIMESTAMPTZ
"""

DROP_CREDITS_COLUMNS = """
ALTER TABLE users
DROP COLUMN IF EXISTS pro_until,
DROP COLUMN IF EXISTS pro_since,
DROP COLUMN IF EXISTS credits,
DROP COLUMN IF EXISTS plan
"""


def initialize_free_credits_function(free_credits: int = FREE_INITIAL_CREDITS) -> str:
    """BEFORE INSERT body granting the free allowance to zero-credit FREE users."""
    grant = int(free_credits)
    return f"""
CREATE OR REPLACE FUNCTION initialize_free_credits()
RETURNS TRIGGER AS $$
BEGIN
  IF NEW.credits = 0 AND NEW.plan = 'FREE' THEN
    NEW.credits := {grant};
    INSERT INTO credit_transactions (user_id, change, reason)
    VALUES (NEW.id, {grant}, 'INITIAL_FREE');
  END IF;
  RETURN NEW;
END;
$$ LANGUAGE plpgsql
"""


def backfill_statements(free_credits: int = FREE_INITIAL_CREDITS) -> List[str]:
    """Retrofit the free allowance onto users created before the credits columns existed.

    FREE users at zero credits with no ledger history are granted the allowance; then
    every user holding exactly the allowance without an INITIAL_FREE entry gets one.
    """
    grant = int(free_credits)
    return [
        f"""
UPDATE users
SET plan = 'FREE', credits = {grant}
WHERE credits = 0 AND plan = 'FREE'
AND NOT EXISTS (
  SELECT 1 FROM credit_transactions
  WHERE credit_transactions.user_id = users.id
)
""",
        f"""
INSERT INTO credit_transactions (user_id, change, reason)
SELECT id, {grant}, 'INITIAL_FREE'
FROM users
WHERE credits = {grant}
AND NOT EXISTS (
  SELECT 1 FROM credit_transactions
  WHERE credit_transactions.user_id = users.id AND reason = 'INITIAL_FREE'
)
""",
    ]


def create_trigger(name: str, table: str, timing: str, function: str) -> List[str]:
    """Statements (re)creating a row-level trigger."""
    return [
        f"DROP TRIGGER IF EXISTS {name} ON {table}",
        f"CREATE TRIGGER {name}\n  {timing} ON {table}\n  FOR EACH ROW\n  EXECUTE FUNCTION {function}()",
    ]


def touch_updated_at_trigger(table: str) -> List[str]:
    """Attach the shared updated_at refresh procedure to table."""
    return create_trigger(f"update_{table}_updated_at", table, "BEFORE UPDATE", "update_updated_at_column")


def drop_trigger(name: str, table: str) -> str:
    return f"DROP TRIGGER IF EXISTS {name} ON {table}"
