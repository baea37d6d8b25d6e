"""
Rule content reconciliation.

Replaces the stored rule error keys with the content of a rule content
directory in a single transaction: either the whole directory is stored or
the previous content stays untouched.
"""

from src.core.models import RuleContent, RuleContentDirectory
from src.observability.logger import get_logger, log_operation
from src.observability.metrics import record_content_load, track_operation
from src.storage.connection import DatabaseConnectionPool
from src.storage.errors import InvalidRuleErrorKeyStatusError

logger = get_logger(__name__)

ACTIVE_STATUS = "active"
INACTIVE_STATUS = "inactive"
VALID_STATUSES = (ACTIVE_STATUS, INACTIVE_STATUS)

DELETE_ERROR_KEYS_SQL = "DELETE FROM rule_error_key"

UPSERT_RULE_SQL = """
    INSERT INTO rule (module, name, summary, reason, resolution, more_info)
    VALUES (%s, %s, %s, %s, %s, %s)
    ON CONFLICT (module) DO NOTHING
"""

INSERT_ERROR_KEY_SQL = """
    INSERT INTO rule_error_key (
        error_key, rule_module, condition, description, impact,
        likelihood, publish_date, active, generic, tags
    )
    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
"""


class ContentReconciler:
    """
    Loads a rule content directory into the rule and rule_error_key tables.

    Toggle and feedback rows reference rules, not error keys, so they
    survive a reconciliation.
    """

    def __init__(self, pool: DatabaseConnectionPool):
        """
        Initialize content reconciler.

        Args:
            pool: Database connection pool
        """
        self.pool = pool

    def load_rule_content(self, directory: RuleContentDirectory) -> int:
        """
        Replace all stored error keys with the content of the directory.

        Rules missing from the store are inserted; existing rules are kept
        as they are. Any failure rolls the whole transaction back and the
        original exception (driver errors included) propagates unchanged.

        Args:
            directory: Validated rule content directory

        Returns:
            Number of error keys written

        Raises:
            InvalidRuleErrorKeyStatusError: If an error key status is not
                "active" or "inactive"
            psycopg.Error: Any error reported by the database
        """
        inserted = None
        try:
            with log_operation("Loading rule content", logger=logger, rules=len(directory.rules)):
                with track_operation("load_rule_content"):
                    with self.pool.transaction() as conn:
                        with conn.cursor() as cur:
                            cur.execute(DELETE_ERROR_KEYS_SQL)

                            count = 0
                            for rule in directory.rules.values():
                                count += self._store_rule(cur, rule, directory.config.impact)
                    inserted = count
        finally:
            record_content_load(inserted)

        return inserted

    def _store_rule(self, cur, rule: RuleContent, impacts: dict[str, int]) -> int:
        """Upsert one rule and insert all of its error keys; returns the key count."""
        module = rule.plugin.python_module

        cur.execute(
            UPSERT_RULE_SQL,
            (
                module,
                rule.plugin.name,
                rule.summary,
                rule.reason,
                rule.resolution,
                rule.more_info,
            ),
        )

        for error_key, content in rule.error_keys.items():
            metadata = content.metadata
            if metadata.status not in VALID_STATUSES:
                raise InvalidRuleErrorKeyStatusError(metadata.status)

            # An unknown impact name is a broken directory, not a user error
            impact = impacts[metadata.impact]

            cur.execute(
                INSERT_ERROR_KEY_SQL,
                (
                    error_key,
                    module,
                    metadata.condition,
                    metadata.description,
                    impact,
                    metadata.likelihood,
                    metadata.publish_date,
                    metadata.status == ACTIVE_STATUS,
                    content.generic,
                    ",".join(metadata.tags),
                ),
            )

        logger.debug(
            f"Stored rule {module} with {len(rule.error_keys)} error key(s)",
            extra={"rule_module": module},
        )
        return len(rule.error_keys)
