"""
Core data models for the rule content storage.

All models use Pydantic for runtime validation and type safety.
"""

from .content import (
    DisabledMetadata,
    ErrorKeyMetadata,
    GlobalRuleConfig,
    RuleContent,
    RuleContentDirectory,
    RuleErrorKeyContent,
    RulePluginInfo,
)
from .feedback import Feedback, UserVote
from .report import ReportRules, RuleContentResponse, RuleOnReport
from .rule import Rule, RuleErrorKey, RuleWithContent
from .toggle import ClusterRuleToggle, RuleToggle

__all__ = [
    "DisabledMetadata",
    "ErrorKeyMetadata",
    "GlobalRuleConfig",
    "RuleContent",
    "RuleContentDirectory",
    "RuleErrorKeyContent",
    "RulePluginInfo",
    "Rule",
    "RuleErrorKey",
    "RuleWithContent",
    "RuleOnReport",
    "ReportRules",
    "RuleContentResponse",
    "ClusterRuleToggle",
    "RuleToggle",
    "Feedback",
    "UserVote",
]
