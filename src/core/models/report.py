"""
Report-side models: the rules hit on a cluster and the content returned for them.
"""

from pydantic import BaseModel, Field

REPORT_COMPONENT_SUFFIX = ".report"


class RuleOnReport(BaseModel):
    """
    A rule reported for a cluster.

    Attributes:
        module: Reporting component, e.g. "ccx_rules_ocp.external.rules.foo.report"
        error_key: Error key reported by the component
    """

    module: str
    error_key: str

    @property
    def rule_module(self) -> str:
        """Rule module without the trailing ".report" component name."""
        return self.module.removesuffix(REPORT_COMPONENT_SUFFIX)


class ReportRules(BaseModel):
    """Rules of a single cluster report, split by outcome."""

    hit_rules: list[RuleOnReport] = Field(default_factory=list)
    skipped_rules: list[RuleOnReport] = Field(default_factory=list)
    passed_rules: list[RuleOnReport] = Field(default_factory=list)
    total_count: int = 0


class RuleContentResponse(BaseModel):
    """
    Content for one hit rule, enriched with risk and the user's toggle state.

    Attributes:
        error_key: Error key name
        rule_module: Rule module (without ".report")
        description: Error key description
        generic: Generic remediation text
        reason: Rule reason text
        resolution: Rule resolution text
        created_at: Publish date as RFC 3339 UTC string
        total_risk: Integer average of impact and likelihood
        risk_of_change: Not computed yet, always 0
        template_data: Report-specific data, not filled by storage
        tags: Tags of the error key
        disabled: Whether the user disabled the rule for the cluster
    """

    error_key: str
    rule_module: str
    description: str
    generic: str
    reason: str
    resolution: str
    created_at: str
    total_risk: int
    risk_of_change: int = 0
    template_data: dict | None = None
    tags: list[str] = Field(default_factory=list)
    disabled: bool = False
