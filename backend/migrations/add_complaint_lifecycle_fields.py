"""
Migration: Add complaint lifecycle fields.

Brings an existing complaints table up to the escalation/resolution model:
1. escalation columns - is_escalated, escalation_reason, escalated_at
2. resolution columns - resolution_type, resolution_notes, refund_amount,
   suspension_days, suspension_ends_at, resolved_by, resolved_at
3. activity_log - append-only lifecycle records
4. notifications - database notification channel

Safe to re-run: every step checks before it changes anything.
"""
from sqlalchemy import create_engine, text
import os

# Use same DB URL pattern as main app
DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"postgresql://{os.getenv('USER', 'postgres')}@localhost:5432/complaint_engine"
)

# Native enum types created by SQLAlchemy's Enum for the ORM columns
ENUM_TYPES = {
    "escalationreason": ["auto_24h", "manual_client", "manual_cook"],
    "resolutiontype": ["dismiss", "partial_refund", "full_refund", "warning", "suspend"],
    "actortype": ["USER", "SYSTEM"],
}

COMPLAINT_COLUMNS = [
    ("is_escalated", "BOOLEAN NOT NULL DEFAULT FALSE"),
    ("escalation_reason", "escalationreason"),
    ("escalated_at", "TIMESTAMP"),
    ("resolution_type", "resolutiontype"),
    ("resolution_notes", "TEXT"),
    ("refund_amount", "NUMERIC(12, 2)"),
    ("suspension_days", "INTEGER"),
    ("suspension_ends_at", "TIMESTAMP"),
    ("resolved_by", "VARCHAR(36) REFERENCES users(id) ON DELETE SET NULL"),
    ("resolved_at", "TIMESTAMP"),
]


def table_exists(conn, table_name: str) -> bool:
    """Check if a table exists in the database."""
    result = conn.execute(text("""
        SELECT EXISTS (
            SELECT FROM information_schema.tables
            WHERE table_name = :table_name
        )
    """), {"table_name": table_name})
    return result.fetchone()[0]


def column_exists(conn, table_name: str, column_name: str) -> bool:
    """Check if a column exists in the table."""
    result = conn.execute(text("""
        SELECT EXISTS (
            SELECT FROM information_schema.columns
            WHERE table_name = :table_name
            AND column_name = :column_name
        )
    """), {"table_name": table_name, "column_name": column_name})
    return result.fetchone()[0]


def type_exists(conn, type_name: str) -> bool:
    result = conn.execute(text("""
        SELECT EXISTS (
            SELECT FROM pg_type WHERE typname = :type_name
        )
    """), {"type_name": type_name})
    return result.fetchone()[0]


def run_migration():
    """Add escalation/resolution columns and the activity_log and notifications tables."""
    engine = create_engine(DATABASE_URL)

    with engine.connect() as conn:
        if not table_exists(conn, "complaints"):
            print("complaints table does not exist - run init_db() first")
            return

        # =================================================================
        # ENUM TYPES
        # =================================================================
        for type_name, values in ENUM_TYPES.items():
            if type_exists(conn, type_name):
                print(f"{type_name} type already exists")
                continue
            labels = ", ".join(f"'{value}'" for value in values)
            conn.execute(text(f"CREATE TYPE {type_name} AS ENUM ({labels})"))
            print(f"Created {type_name} type")

        # =================================================================
        # COMPLAINT COLUMNS
        # =================================================================
        for column_name, ddl in COMPLAINT_COLUMNS:
            if column_exists(conn, "complaints", column_name):
                print(f"{column_name} column already exists")
            else:
                conn.execute(text(f"ALTER TABLE complaints ADD COLUMN {column_name} {ddl}"))
                print(f"Added {column_name} column")

        conn.execute(text("""
            CREATE INDEX IF NOT EXISTS idx_complaints_escalation_scan
            ON complaints(status, is_escalated, created_at)
        """))

        # =================================================================
        # TABLE: activity_log
        # =================================================================
        if table_exists(conn, "activity_log"):
            print("activity_log table already exists")
        else:
            conn.execute(text("""
                CREATE TABLE activity_log (
                    id VARCHAR(36) PRIMARY KEY,
                    log_name VARCHAR(50) NOT NULL,
                    event VARCHAR(100) NOT NULL,
                    subject_type VARCHAR(50) NOT NULL,
                    subject_id VARCHAR(36) NOT NULL,
                    causer_type actortype NOT NULL,
                    causer_id VARCHAR(36),
                    properties JSON,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """))
            conn.execute(text("""
                CREATE INDEX idx_activity_subject ON activity_log(subject_type, subject_id)
            """))
            conn.execute(text("""
                CREATE INDEX idx_activity_event ON activity_log(log_name, event)
            """))
            print("Created activity_log table")

        # =================================================================
        # TABLE: notifications
        # =================================================================
        if table_exists(conn, "notifications"):
            print("notifications table already exists")
        else:
            conn.execute(text("""
                CREATE TABLE notifications (
                    id VARCHAR(36) PRIMARY KEY,
                    user_id VARCHAR(36) NOT NULL REFERENCES users(id) ON DELETE CASCADE,
                    type VARCHAR(100) NOT NULL,
                    title VARCHAR(255) NOT NULL,
                    body TEXT NOT NULL,
                    data JSON,
                    action_url VARCHAR(500),
                    read_at TIMESTAMP,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """))
            conn.execute(text("""
                CREATE INDEX idx_notifications_user ON notifications(user_id)
            """))
            print("Created notifications table")

        conn.commit()
        print("\nComplaint lifecycle migration completed successfully!")


if __name__ == "__main__":
    run_migration()
