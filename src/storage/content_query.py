"""
Content queries for rules hit on a cluster.

Joins the hit rules of a report against the stored rule content, computes
the total risk of each hit and overlays the user's toggle state for the
cluster. The toggle overlay is a second, independent query run on the same
connection and transaction, joined in memory; nothing is cached.
"""

from collections.abc import Callable, Iterable, Iterator
from datetime import datetime, timezone
from typing import TypeVar

import psycopg
from pydantic import BaseModel, ConfigDict, ValidationError

from src.core.models import ReportRules, RuleContentResponse
from src.core.risk import compute_total_risk
from src.observability.logger import get_logger
from src.observability.metrics import content_row_decode_failures_total, track_operation
from src.storage.connection import DatabaseConnectionPool
from src.storage.errors import RowDecodeError

logger = get_logger(__name__)

T = TypeVar("T")

CONTENT_FOR_RULES_SQL = """
    SELECT
        rek.error_key,
        rek.rule_module,
        rek.description,
        rek.generic,
        r.reason,
        r.resolution,
        rek.publish_date,
        rek.impact,
        rek.likelihood,
        rek.tags
    FROM rule r
    INNER JOIN rule_error_key rek ON r.module = rek.rule_module
    WHERE (rek.error_key, rek.rule_module) IN (
        SELECT * FROM unnest(%s::varchar[], %s::varchar[])
    )
"""

DISABLED_RULES_SQL = """
    SELECT rule_id
    FROM cluster_rule_toggle
    WHERE cluster_id = %s AND user_id = %s AND disabled = TRUE
"""


class ContentRow(BaseModel):
    """Shape of a row returned by CONTENT_FOR_RULES_SQL."""

    model_config = ConfigDict(strict=True)

    error_key: str
    rule_module: str
    description: str
    generic: str
    reason: str
    resolution: str
    publish_date: datetime
    impact: int
    likelihood: int
    tags: str


def split_tags(tags: str) -> list[str]:
    """Split a comma-joined tags column; an empty column means no tags."""
    if not tags:
        return []
    return tags.split(",")


def format_created_at(publish_date: datetime) -> str:
    """Format a publish date as an RFC 3339 UTC timestamp."""
    if publish_date.tzinfo is not None:
        publish_date = publish_date.astimezone(timezone.utc).replace(tzinfo=None)
    return publish_date.strftime("%Y-%m-%dT%H:%M:%SZ")


def decode_content_row(row: dict, disabled_rules: set[str]) -> RuleContentResponse:
    """
    Convert a content row into a response.

    Raises:
        RowDecodeError: If the row does not have the expected shape
    """
    try:
        content = ContentRow.model_validate(row)
    except ValidationError as e:
        raise RowDecodeError(
            f"cannot decode content row {row.get('rule_module')}|{row.get('error_key')}: {e}"
        ) from e

    return RuleContentResponse(
        error_key=content.error_key,
        rule_module=content.rule_module,
        description=content.description,
        generic=content.generic,
        reason=content.reason,
        resolution=content.resolution,
        created_at=format_created_at(content.publish_date),
        total_risk=compute_total_risk(content.impact, content.likelihood),
        risk_of_change=0,
        template_data=None,
        tags=split_tags(content.tags),
        disabled=content.rule_module in disabled_rules,
    )


def iter_decoded(
    rows: Iterable[dict],
    decode: Callable[[dict], T],
    query_name: str,
) -> Iterator[T]:
    """
    Lazily decode rows from a result cursor.

    A row that cannot be decoded is logged and skipped. An error raised by
    the cursor itself is logged and ends the iteration by propagating.
    """
    cursor_rows = iter(rows)
    while True:
        try:
            row = next(cursor_rows)
        except StopIteration:
            return
        except psycopg.Error as e:
            logger.error(
                f"SQL rows error while retrieving {query_name}",
                extra={"query": query_name, "error_message": str(e)},
            )
            raise

        try:
            item = decode(row)
        except RowDecodeError as e:
            content_row_decode_failures_total.labels(query=query_name).inc()
            logger.error(
                f"Skipping row while retrieving {query_name}: {e}",
                extra={"query": query_name},
            )
            continue

        yield item


class ContentQueryEngine:
    """
    Answers content queries for the rules hit on a cluster.
    """

    def __init__(self, pool: DatabaseConnectionPool):
        """
        Initialize content query engine.

        Args:
            pool: Database connection pool
        """
        self.pool = pool

    def get_content_for_rules(
        self,
        report_rules: ReportRules,
        user_id: str,
        cluster_id: str,
    ) -> list[RuleContentResponse]:
        """
        Get the content of the rules hit on a cluster.

        Hit rules without stored content are omitted. Rows that cannot be
        decoded are logged and skipped. The order of the result is not
        specified.

        Args:
            report_rules: Rules of the cluster's report; only hit rules are used
            user_id: User whose toggles are overlaid
            cluster_id: Cluster the report belongs to

        Returns:
            Content responses for the hit rules found in the store

        Raises:
            psycopg.Error: If the query or the result cursor fails
        """
        error_keys = [hit.error_key for hit in report_rules.hit_rules]
        modules = [hit.rule_module for hit in report_rules.hit_rules]

        with track_operation("get_content_for_rules"):
            with self.pool.transaction() as conn:
                with conn.cursor() as cur:
                    cur.execute(DISABLED_RULES_SQL, (cluster_id, user_id))
                    disabled_rules = {row["rule_id"] for row in cur.fetchall()}

                with conn.cursor() as cur:
                    cur.execute(CONTENT_FOR_RULES_SQL, (error_keys, modules))
                    responses = list(
                        iter_decoded(
                            cur,
                            lambda row: decode_content_row(row, disabled_rules),
                            "content for rules",
                        )
                    )

        logger.debug(
            f"Found content for {len(responses)} of {len(error_keys)} hit rule(s)",
            extra={"cluster_id": cluster_id, "user_id": user_id},
        )
        return responses
