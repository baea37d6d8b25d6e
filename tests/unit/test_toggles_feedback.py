"""
Unit tests for ToggleStore and FeedbackStore against a mocked connection.
"""

from datetime import datetime

import pytest

from src.core.models import RuleContentResponse, RuleToggle, UserVote
from src.storage.errors import DatabaseClosedError, ItemNotFoundError
from src.storage.feedback import FeedbackStore
from src.storage.toggles import ToggleStore
from tests.testdata import CLUSTER_NAME, RULE1_ID, RULE2_ID, RULE3_ID, USER_ID


def content_for(module: str) -> RuleContentResponse:
    return RuleContentResponse(
        error_key="ek",
        rule_module=module,
        description="",
        generic="",
        reason="",
        resolution="",
        created_at="1970-01-01T00:00:00Z",
        total_risk=1,
    )


@pytest.mark.unit
class TestToggleStore:
    """Tests for ToggleStore"""

    def test_disable_sets_disabled_at_only(self, mock_db):
        ToggleStore(mock_db.pool).toggle_rule_for_cluster(
            CLUSTER_NAME, RULE1_ID, USER_ID, RuleToggle.DISABLE
        )

        params = mock_db.cursor.execute.call_args.args[1]
        cluster, rule, user, disabled, disabled_at, enabled_at, updated_at = params
        assert (cluster, rule, user) == (CLUSTER_NAME, RULE1_ID, USER_ID)
        assert disabled is True
        assert isinstance(disabled_at, datetime)
        assert enabled_at is None
        assert updated_at == disabled_at
        mock_db.conn.commit.assert_called_once()

    def test_enable_sets_enabled_at_only(self, mock_db):
        ToggleStore(mock_db.pool).toggle_rule_for_cluster(
            CLUSTER_NAME, RULE1_ID, USER_ID, RuleToggle.ENABLE
        )

        params = mock_db.cursor.execute.call_args.args[1]
        assert params[3] is False
        assert params[4] is None
        assert isinstance(params[5], datetime)

    def test_toggle_accepts_plain_int(self, mock_db):
        ToggleStore(mock_db.pool).toggle_rule_for_cluster(CLUSTER_NAME, RULE1_ID, USER_ID, 1)
        assert mock_db.cursor.execute.call_args.args[1][3] is True

    def test_invalid_toggle_state(self, mock_db):
        with pytest.raises(ValueError):
            ToggleStore(mock_db.pool).toggle_rule_for_cluster(CLUSTER_NAME, RULE1_ID, USER_ID, 2)
        mock_db.cursor.execute.assert_not_called()

    def test_toggle_is_upsert(self, mock_db):
        ToggleStore(mock_db.pool).toggle_rule_for_cluster(
            CLUSTER_NAME, RULE1_ID, USER_ID, RuleToggle.DISABLE
        )
        assert "ON CONFLICT (cluster_id, rule_id, user_id) DO UPDATE" in mock_db.executed_sql()[0]

    def test_get_missing_toggle(self, mock_db):
        mock_db.cursor.fetchall.return_value = []

        with pytest.raises(ItemNotFoundError) as exc_info:
            ToggleStore(mock_db.pool).get_from_cluster_rule_toggle(CLUSTER_NAME, RULE1_ID, USER_ID)

        assert RULE1_ID in str(exc_info.value)

    def test_get_toggle(self, mock_db):
        now = datetime(1970, 1, 1, 0, 0, 25)
        mock_db.cursor.fetchall.return_value = [
            {
                "cluster_id": CLUSTER_NAME,
                "rule_id": RULE1_ID,
                "user_id": USER_ID,
                "disabled": True,
                "disabled_at": now,
                "enabled_at": None,
                "updated_at": now,
            }
        ]

        toggle = ToggleStore(mock_db.pool).get_from_cluster_rule_toggle(CLUSTER_NAME, RULE1_ID, USER_ID)

        assert toggle.disabled == RuleToggle.DISABLE
        assert toggle.disabled_at == now
        assert toggle.enabled_at is None

    def test_delete_missing_toggle_is_not_an_error(self, mock_db):
        mock_db.cursor.rowcount = 0
        ToggleStore(mock_db.pool).delete_from_rule_cluster_toggle(CLUSTER_NAME, RULE1_ID, USER_ID)
        mock_db.conn.commit.assert_called_once()

    def test_closed_pool(self, closed_pool):
        with pytest.raises(DatabaseClosedError):
            ToggleStore(closed_pool).toggle_rule_for_cluster(
                CLUSTER_NAME, RULE1_ID, USER_ID, RuleToggle.DISABLE
            )


@pytest.mark.unit
class TestFeedbackStore:
    """Tests for FeedbackStore"""

    def test_vote_inserts_empty_message(self, mock_db):
        FeedbackStore(mock_db.pool).vote_on_rule(CLUSTER_NAME, RULE1_ID, USER_ID, UserVote.LIKE)

        params = mock_db.cursor.execute.call_args.args[1]
        assert params[:4] == (CLUSTER_NAME, RULE1_ID, USER_ID, 1)
        assert params[4] == params[5]
        assert params[6] == ""

    def test_vote_conflict_keeps_message_and_added_at(self, mock_db):
        FeedbackStore(mock_db.pool).vote_on_rule(CLUSTER_NAME, RULE1_ID, USER_ID, UserVote.DISLIKE)

        update = mock_db.executed_sql()[0].split("DO UPDATE SET")[1]
        assert "user_vote" in update
        assert "message" not in update
        assert "added_at" not in update

    def test_message_conflict_keeps_vote(self, mock_db):
        FeedbackStore(mock_db.pool).add_or_update_feedback_on_rule(
            CLUSTER_NAME, RULE1_ID, USER_ID, "helpful"
        )

        params = mock_db.cursor.execute.call_args.args[1]
        assert params[3] == int(UserVote.NONE)
        assert params[6] == "helpful"

        update = mock_db.executed_sql()[0].split("DO UPDATE SET")[1]
        assert "message" in update
        assert "user_vote" not in update

    def test_invalid_vote(self, mock_db):
        with pytest.raises(ValueError):
            FeedbackStore(mock_db.pool).vote_on_rule(CLUSTER_NAME, RULE1_ID, USER_ID, 5)

    def test_get_missing_feedback(self, mock_db):
        mock_db.cursor.fetchall.return_value = []

        with pytest.raises(ItemNotFoundError):
            FeedbackStore(mock_db.pool).get_user_feedback_on_rule(CLUSTER_NAME, RULE1_ID, USER_ID)

    def test_votes_on_rules_default_to_none(self, mock_db):
        mock_db.cursor.fetchall.return_value = [
            {"rule_id": RULE1_ID, "user_vote": 1},
            {"rule_id": RULE2_ID, "user_vote": -1},
        ]
        content = [content_for(RULE1_ID), content_for(RULE2_ID), content_for(RULE3_ID)]

        votes = FeedbackStore(mock_db.pool).get_user_feedback_on_rules(CLUSTER_NAME, content, USER_ID)

        assert votes == {
            RULE1_ID: UserVote.LIKE,
            RULE2_ID: UserVote.DISLIKE,
            RULE3_ID: UserVote.NONE,
        }
        assert mock_db.cursor.execute.call_args.args[1] == (
            CLUSTER_NAME, USER_ID, [RULE1_ID, RULE2_ID, RULE3_ID]
        )

    def test_votes_on_no_rules(self, mock_db):
        mock_db.cursor.fetchall.return_value = []
        assert FeedbackStore(mock_db.pool).get_user_feedback_on_rules(CLUSTER_NAME, [], USER_ID) == {}
