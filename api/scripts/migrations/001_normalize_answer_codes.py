"""Migration 001: Normalize assessment answers to option indexes.

Questions created before answers were normalized carry a letter code,
index string or option text in ``correct_answer_code``. This migration:
- adds the ``correct_answer`` INT column to tables that predate it
- resolves each legacy code to an option index
- clears ``correct_answer_code`` on converted rows

Rows whose code matches no option are logged and left untouched.

Usage:
    cd api && python -m scripts.migrations.001_normalize_answer_codes
"""

import asyncio

import structlog

from scripts.cluster import cassandra_session
from securelearn.assessments.service import AssessmentService
from securelearn.config import get_settings


logger = structlog.get_logger(__name__)

MIGRATION_NAME = "001_normalize_answer_codes"

SCHEMA_STATEMENTS = [
    "ALTER TABLE {keyspace}.assessment_questions ADD correct_answer INT",
    "ALTER TABLE {keyspace}.assessment_questions ADD correct_answer_code TEXT",
]


async def migrate_schema(session, keyspace: str) -> tuple[int, int]:
    """Add answer columns missing from older tables.

    Returns:
        Tuple of (applied_count, skipped_count)
    """
    applied = 0
    skipped = 0

    for stmt_template in SCHEMA_STATEMENTS:
        stmt = stmt_template.format(keyspace=keyspace)
        try:
            await session.aexecute(stmt)
            logger.info("migration_applied", statement=stmt)
            applied += 1
        except Exception as e:
            error_str = str(e).lower()
            # Cassandra raises InvalidRequest if column already exists
            if "already exist" in error_str or "conflicts with an existing column" in error_str:
                logger.info("migration_skipped_exists", statement=stmt)
                skipped += 1
            else:
                logger.error("migration_failed", statement=stmt, error=str(e))
                raise

    return applied, skipped


async def migrate_up(session, keyspace: str) -> tuple[int, int]:
    """Apply migration.

    Returns:
        Tuple of (converted_count, failed_count)
    """
    await migrate_schema(session, keyspace)
    assessment_service = AssessmentService(session=session, keyspace=keyspace)
    return await assessment_service.normalize_legacy_answers()


async def run_migration() -> None:
    """Run the migration."""
    settings = get_settings()
    keyspace = settings.cassandra_keyspace

    logger.info(
        "migration_starting",
        migration=MIGRATION_NAME,
        keyspace=keyspace,
        hosts=settings.cassandra_hosts,
    )

    with cassandra_session(settings) as session:
        converted, failed = await migrate_up(session, keyspace)
        logger.info(
            "migration_completed",
            migration=MIGRATION_NAME,
            converted=converted,
            failed=failed,
        )


if __name__ == "__main__":
    asyncio.run(run_migration())
