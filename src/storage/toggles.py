"""
Per-cluster, per-user rule toggle storage.
"""

from datetime import datetime, timezone

from src.core.models import ClusterRuleToggle, RuleToggle
from src.observability.logger import get_logger
from src.observability.metrics import track_operation
from src.storage.connection import DatabaseConnectionPool
from src.storage.errors import ItemNotFoundError

logger = get_logger(__name__)

TOGGLE_COLUMNS = "cluster_id, rule_id, user_id, disabled, disabled_at, enabled_at, updated_at"


def utc_now() -> datetime:
    """Current UTC time as a naive timestamp, matching TIMESTAMP columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def toggle_from_row(row: dict) -> ClusterRuleToggle:
    """Build a ClusterRuleToggle from a cluster_rule_toggle row."""
    return ClusterRuleToggle(
        cluster_id=row["cluster_id"],
        rule_id=row["rule_id"],
        user_id=row["user_id"],
        disabled=RuleToggle(int(row["disabled"])),
        disabled_at=row["disabled_at"],
        enabled_at=row["enabled_at"],
        updated_at=row["updated_at"],
    )


class ToggleStore:
    """
    Stores users' enable/disable overrides of rules on clusters.

    Independent of rule content: toggles survive content reconciliation.
    """

    def __init__(self, pool: DatabaseConnectionPool):
        """
        Initialize toggle store.

        Args:
            pool: Database connection pool
        """
        self.pool = pool

    def toggle_rule_for_cluster(
        self, cluster_id: str, rule_id: str, user_id: str, state: RuleToggle
    ) -> None:
        """
        Enable or disable a rule for a cluster on behalf of a user.

        The timestamp matching the new state is set and the opposite one
        cleared.

        Args:
            cluster_id: Cluster name
            rule_id: Rule module
            user_id: User ID
            state: RuleToggle.ENABLE or RuleToggle.DISABLE
        """
        state = RuleToggle(state)
        now = utc_now()
        disabled_at = now if state == RuleToggle.DISABLE else None
        enabled_at = now if state == RuleToggle.ENABLE else None

        query = f"""
            INSERT INTO cluster_rule_toggle ({TOGGLE_COLUMNS})
            VALUES (%s, %s, %s, %s, %s, %s, %s)
            ON CONFLICT (cluster_id, rule_id, user_id) DO UPDATE SET
                disabled = EXCLUDED.disabled,
                disabled_at = EXCLUDED.disabled_at,
                enabled_at = EXCLUDED.enabled_at,
                updated_at = EXCLUDED.updated_at
        """

        with track_operation("toggle_rule_for_cluster"):
            with self.pool.transaction() as conn:
                with conn.cursor() as cur:
                    cur.execute(
                        query,
                        (
                            cluster_id,
                            rule_id,
                            user_id,
                            state == RuleToggle.DISABLE,
                            disabled_at,
                            enabled_at,
                            now,
                        ),
                    )

        logger.info(
            f"Rule {rule_id} {state.name.lower()}d for cluster {cluster_id}",
            extra={"cluster_id": cluster_id, "rule_id": rule_id, "user_id": user_id},
        )

    def get_from_cluster_rule_toggle(
        self, cluster_id: str, rule_id: str, user_id: str
    ) -> ClusterRuleToggle:
        """
        Get the toggle of a rule for a cluster and user.

        Raises:
            ItemNotFoundError: If the rule was never toggled
        """
        query = f"""
            SELECT {TOGGLE_COLUMNS}
            FROM cluster_rule_toggle
            WHERE cluster_id = %s AND rule_id = %s AND user_id = %s
        """

        with track_operation("get_from_cluster_rule_toggle"):
            rows = self.pool.execute_query(query, (cluster_id, rule_id, user_id))
            if not rows:
                raise ItemNotFoundError(f"{cluster_id}/{rule_id}/{user_id}")

        return toggle_from_row(rows[0])

    def list_disabled_rules_for_cluster(
        self, cluster_id: str, user_id: str
    ) -> list[ClusterRuleToggle]:
        """List the rules a user disabled for a cluster."""
        query = f"""
            SELECT {TOGGLE_COLUMNS}
            FROM cluster_rule_toggle
            WHERE cluster_id = %s AND user_id = %s AND disabled = TRUE
        """

        with track_operation("list_disabled_rules_for_cluster"):
            rows = self.pool.execute_query(query, (cluster_id, user_id))

        return [toggle_from_row(row) for row in rows]

    def delete_from_rule_cluster_toggle(
        self, cluster_id: str, rule_id: str, user_id: str
    ) -> None:
        """
        Delete the toggle of a rule for a cluster and user.

        Deleting a toggle that does not exist is not an error.
        """
        query = """
            DELETE FROM cluster_rule_toggle
            WHERE cluster_id = %s AND rule_id = %s AND user_id = %s
        """

        with track_operation("delete_from_rule_cluster_toggle"):
            self.pool.execute_command(query, (cluster_id, rule_id, user_id))
