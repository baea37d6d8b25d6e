"""
User feedback storage: votes and free-text messages on rules hit on clusters.

Feedback rows reference the cluster's report and the rule, so feedback on
an unknown cluster or rule fails with the driver's foreign key violation.
"""

from src.core.models import Feedback, RuleContentResponse, UserVote
from src.observability.logger import get_logger
from src.observability.metrics import track_operation
from src.storage.connection import DatabaseConnectionPool
from src.storage.errors import ItemNotFoundError
from src.storage.toggles import utc_now

logger = get_logger(__name__)

UPSERT_VOTE_SQL = """
    INSERT INTO cluster_rule_user_feedback (
        cluster_id, rule_id, user_id, user_vote, added_at, updated_at, message
    )
    VALUES (%s, %s, %s, %s, %s, %s, %s)
    ON CONFLICT (cluster_id, rule_id, user_id) DO UPDATE SET
        user_vote = EXCLUDED.user_vote,
        updated_at = EXCLUDED.updated_at
"""

UPSERT_MESSAGE_SQL = """
    INSERT INTO cluster_rule_user_feedback (
        cluster_id, rule_id, user_id, user_vote, added_at, updated_at, message
    )
    VALUES (%s, %s, %s, %s, %s, %s, %s)
    ON CONFLICT (cluster_id, rule_id, user_id) DO UPDATE SET
        message = EXCLUDED.message,
        updated_at = EXCLUDED.updated_at
"""


class FeedbackStore:
    """
    Stores users' votes and messages on rules for clusters.

    added_at is written once, on the first vote or message; every later
    write only moves updated_at.
    """

    def __init__(self, pool: DatabaseConnectionPool):
        """
        Initialize feedback store.

        Args:
            pool: Database connection pool
        """
        self.pool = pool

    def vote_on_rule(
        self, cluster_id: str, rule_id: str, user_id: str, vote: UserVote
    ) -> None:
        """
        Set a user's vote on a rule, keeping any existing message.

        Raises:
            psycopg.errors.ForeignKeyViolation: If the cluster has no report
                or the rule does not exist
        """
        vote = UserVote(vote)
        self._upsert(
            "vote_on_rule",
            UPSERT_VOTE_SQL,
            cluster_id, rule_id, user_id,
            vote=vote,
            message="",
        )

    def add_or_update_feedback_on_rule(
        self, cluster_id: str, rule_id: str, user_id: str, message: str
    ) -> None:
        """
        Set a user's message on a rule, keeping any existing vote.

        Raises:
            psycopg.errors.ForeignKeyViolation: If the cluster has no report
                or the rule does not exist
        """
        self._upsert(
            "add_or_update_feedback_on_rule",
            UPSERT_MESSAGE_SQL,
            cluster_id, rule_id, user_id,
            vote=UserVote.NONE,
            message=message,
        )

    def _upsert(
        self,
        operation: str,
        query: str,
        cluster_id: str,
        rule_id: str,
        user_id: str,
        vote: UserVote,
        message: str,
    ) -> None:
        now = utc_now()

        with track_operation(operation):
            with self.pool.transaction() as conn:
                with conn.cursor() as cur:
                    cur.execute(
                        query,
                        (cluster_id, rule_id, user_id, int(vote), now, now, message),
                    )

        logger.info(
            f"Stored feedback on rule {rule_id} for cluster {cluster_id}",
            extra={"cluster_id": cluster_id, "rule_id": rule_id, "user_id": user_id},
        )

    def get_user_feedback_on_rule(
        self, cluster_id: str, rule_id: str, user_id: str
    ) -> Feedback:
        """
        Get a user's feedback on a rule for a cluster.

        Raises:
            ItemNotFoundError: If the user gave no feedback
        """
        query = """
            SELECT cluster_id, rule_id, user_id, message, user_vote, added_at, updated_at
            FROM cluster_rule_user_feedback
            WHERE cluster_id = %s AND rule_id = %s AND user_id = %s
        """

        with track_operation("get_user_feedback_on_rule"):
            rows = self.pool.execute_query(query, (cluster_id, rule_id, user_id))
            if not rows:
                raise ItemNotFoundError(f"{cluster_id}/{rule_id}/{user_id}")

        row = rows[0]
        return Feedback(
            cluster_id=row["cluster_id"],
            rule_id=row["rule_id"],
            user_id=row["user_id"],
            message=row["message"],
            user_vote=UserVote(row["user_vote"]),
            added_at=row["added_at"],
            updated_at=row["updated_at"],
        )

    def get_user_feedback_on_rules(
        self,
        cluster_id: str,
        rule_content: list[RuleContentResponse],
        user_id: str,
    ) -> dict[str, UserVote]:
        """
        Get a user's votes on many rules of one cluster.

        Args:
            cluster_id: Cluster name
            rule_content: Content responses whose rules are looked up
            user_id: User ID

        Returns:
            Mapping of rule module to vote with exactly one entry per
            requested rule; rules without feedback map to UserVote.NONE
        """
        votes = {content.rule_module: UserVote.NONE for content in rule_content}

        query = """
            SELECT rule_id, user_vote
            FROM cluster_rule_user_feedback
            WHERE cluster_id = %s AND user_id = %s AND rule_id = ANY(%s)
        """

        with track_operation("get_user_feedback_on_rules"):
            rows = self.pool.execute_query(query, (cluster_id, user_id, list(votes)))

        for row in rows:
            votes[row["rule_id"]] = UserVote(row["user_vote"])

        return votes
