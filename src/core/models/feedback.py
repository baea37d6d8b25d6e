"""
Feedback model: a user's vote and free-text message on a rule for a cluster.
"""

from datetime import datetime
from enum import IntEnum

from pydantic import BaseModel


class UserVote(IntEnum):
    """Vote a user gave a rule."""

    DISLIKE = -1
    NONE = 0
    LIKE = 1


class Feedback(BaseModel):
    """
    User feedback on a rule hit on a cluster.

    Attributes:
        cluster_id: Cluster name (FK to report.cluster)
        rule_id: Rule module (FK to rule.module)
        user_id: Author of the feedback
        message: Free-text message, empty when only a vote was given
        user_vote: Like/dislike/none
        added_at: First write of the row, never changed afterwards
        updated_at: Last write of the row
    """

    cluster_id: str
    rule_id: str
    user_id: str
    message: str = ""
    user_vote: UserVote = UserVote.NONE
    added_at: datetime
    updated_at: datetime
