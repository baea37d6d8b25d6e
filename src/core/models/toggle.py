"""
ClusterRuleToggle model: per-cluster, per-user rule enable/disable override.
"""

from datetime import datetime
from enum import IntEnum

from pydantic import BaseModel


class RuleToggle(IntEnum):
    """Toggle state stored for a rule."""

    ENABLE = 0
    DISABLE = 1


class ClusterRuleToggle(BaseModel):
    """
    A user's override of a rule on a cluster.

    Only the timestamp matching the current state is populated:
    disabled_at when disabled, enabled_at when enabled.

    Attributes:
        cluster_id: Cluster name
        rule_id: Rule module
        user_id: User who toggled the rule
        disabled: Current toggle state
        disabled_at: When the rule was disabled
        enabled_at: When the rule was enabled
        updated_at: Last change of the row
    """

    cluster_id: str
    rule_id: str
    user_id: str
    disabled: RuleToggle
    disabled_at: datetime | None = None
    enabled_at: datetime | None = None
    updated_at: datetime
