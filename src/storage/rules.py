"""
Rule catalog operations outside of bulk reconciliation.

Used by rule management tooling to create, inspect and delete single rules
and rule error keys.
"""

from src.core.models import Rule, RuleErrorKey, RuleWithContent
from src.core.risk import compute_total_risk
from src.observability.logger import get_logger
from src.observability.metrics import track_operation
from src.storage.connection import DatabaseConnectionPool
from src.storage.content_query import split_tags
from src.storage.errors import ItemNotFoundError

logger = get_logger(__name__)


class RuleCatalog:
    """
    CRUD access to the rule and rule_error_key tables.

    Unlike toggle deletion, deleting a missing rule or error key fails with
    ItemNotFoundError.
    """

    def __init__(self, pool: DatabaseConnectionPool):
        """
        Initialize rule catalog.

        Args:
            pool: Database connection pool
        """
        self.pool = pool

    def create_rule(self, rule: Rule) -> None:
        """
        Create a rule, or overwrite the texts of an existing one.

        Args:
            rule: Rule to store
        """
        query = """
            INSERT INTO rule (module, name, summary, reason, resolution, more_info)
            VALUES (%s, %s, %s, %s, %s, %s)
            ON CONFLICT (module) DO UPDATE SET
                name = EXCLUDED.name,
                summary = EXCLUDED.summary,
                reason = EXCLUDED.reason,
                resolution = EXCLUDED.resolution,
                more_info = EXCLUDED.more_info
        """

        with track_operation("create_rule"):
            self.pool.execute_command(
                query,
                (
                    rule.module,
                    rule.name,
                    rule.summary,
                    rule.reason,
                    rule.resolution,
                    rule.more_info,
                ),
            )

        logger.info(f"Created rule {rule.module}", extra={"rule_module": rule.module})

    def create_rule_error_key(self, rule_error_key: RuleErrorKey) -> None:
        """
        Create an error key, or overwrite an existing one.

        Raises:
            psycopg.errors.ForeignKeyViolation: If the rule does not exist
        """
        query = """
            INSERT INTO rule_error_key (
                error_key, rule_module, condition, description, impact,
                likelihood, publish_date, active, generic, tags
            )
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
            ON CONFLICT (error_key, rule_module) DO UPDATE SET
                condition = EXCLUDED.condition,
                description = EXCLUDED.description,
                impact = EXCLUDED.impact,
                likelihood = EXCLUDED.likelihood,
                publish_date = EXCLUDED.publish_date,
                active = EXCLUDED.active,
                generic = EXCLUDED.generic,
                tags = EXCLUDED.tags
        """

        with track_operation("create_rule_error_key"):
            self.pool.execute_command(
                query,
                (
                    rule_error_key.error_key,
                    rule_error_key.rule_module,
                    rule_error_key.condition,
                    rule_error_key.description,
                    rule_error_key.impact,
                    rule_error_key.likelihood,
                    rule_error_key.publish_date,
                    rule_error_key.active,
                    rule_error_key.generic,
                    ",".join(rule_error_key.tags),
                ),
            )

    def delete_rule(self, module: str) -> None:
        """
        Delete a rule together with its error keys and feedback.

        Raises:
            ItemNotFoundError: If no rule has the given module
        """
        with track_operation("delete_rule"):
            deleted = self.pool.execute_command(
                "DELETE FROM rule WHERE module = %s", (module,)
            )
            if deleted == 0:
                raise ItemNotFoundError(module)

        logger.info(f"Deleted rule {module}", extra={"rule_module": module})

    def delete_rule_error_key(self, module: str, error_key: str) -> None:
        """
        Delete one error key of a rule.

        Raises:
            ItemNotFoundError: If the error key does not exist
        """
        with track_operation("delete_rule_error_key"):
            deleted = self.pool.execute_command(
                "DELETE FROM rule_error_key WHERE rule_module = %s AND error_key = %s",
                (module, error_key),
            )
            if deleted == 0:
                raise ItemNotFoundError(f"{module}/{error_key}")

    def get_rule_with_content(self, module: str, error_key: str) -> RuleWithContent:
        """
        Get a rule merged with one of its error keys.

        Raises:
            ItemNotFoundError: If the rule or the error key does not exist
        """
        query = """
            SELECT
                r.module, r.name, r.summary, r.reason, r.resolution, r.more_info,
                rek.error_key, rek.condition, rek.description, rek.impact,
                rek.likelihood, rek.publish_date, rek.active, rek.generic, rek.tags
            FROM rule r
            INNER JOIN rule_error_key rek ON r.module = rek.rule_module
            WHERE r.module = %s AND rek.error_key = %s
        """

        with track_operation("get_rule_with_content"):
            rows = self.pool.execute_query(query, (module, error_key))
            if not rows:
                raise ItemNotFoundError(f"{module}/{error_key}")

        row = rows[0]
        return RuleWithContent(
            module=row["module"],
            name=row["name"],
            summary=row["summary"],
            reason=row["reason"],
            resolution=row["resolution"],
            more_info=row["more_info"],
            error_key=row["error_key"],
            condition=row["condition"],
            description=row["description"],
            total_risk=compute_total_risk(row["impact"], row["likelihood"]),
            publish_date=row["publish_date"],
            active=row["active"],
            generic=row["generic"],
            tags=split_tags(row["tags"]),
        )
