"""
Risk model for rule error keys.
"""


def compute_total_risk(impact: int, likelihood: int) -> int:
    """
    Compute the total risk of an error key.

    Total risk is the integer (floor) average of impact and likelihood,
    e.g. impact 2 with likelihood 4 gives 3.

    Args:
        impact: Numeric impact level
        likelihood: Numeric likelihood

    Returns:
        Total risk score
    """
    return (impact + likelihood) // 2
