"""Two-proportion significance test for A/B experiments.

Given the accumulated counts of an experiment, this module computes each
variant's conversion rate, a pooled z-test for the difference between them,
an approximate two-tailed p-value, and a winner.

Allocation:
    Rates assume the sample is split evenly between the two variants, so each
    rate is ``conversions / (sample_size / 2)``. Experiments that allocate
    traffic unevenly get skewed rates (and can report a rate above 1.0).

Normal CDF:
    Phi is the Zelen & Severo (1964) closed-form approximation, with absolute
    error below 7.5e-8. Results match historical analyses bit for bit, so it
    is kept in place of math.erf.

Dependencies:
    - promptbench.common.models: ExperimentCounts validation, SignificanceResult
"""

import math

from promptbench.common.models import ExperimentCounts, SignificanceResult

SIGNIFICANCE_LEVEL = 0.05

# Zelen & Severo coefficients
_CDF_P = 0.2316419
_CDF_D = 0.3989423
_CDF_B = (0.3193815, -0.3565638, 1.781478, -1.821256, 1.330274)


def normal_cdf(x: float) -> float:
    """Approximate the standard normal CDF.

    Example:
        >>> round(normal_cdf(1.96), 4)
        0.975
        >>> round(normal_cdf(-1.96), 4)
        0.025
    """
    t = 1 / (1 + _CDF_P * abs(x))
    d = _CDF_D * math.exp(-x * x / 2)
    b1, b2, b3, b4, b5 = _CDF_B
    prob = d * t * (b1 + t * (b2 + t * (b3 + t * (b4 + t * b5))))
    return 1 - prob if x > 0 else prob


def two_tailed_p_value(z_score: float) -> float:
    """Two-tailed p-value for a z-score, clamped to [0, 1].

    The approximation gives Phi(0) slightly below 0.5, so the raw value can
    exceed 1 by a few parts in 1e7 near z = 0.
    """
    p_value = 2 * (1 - normal_cdf(abs(z_score)))
    return min(1.0, max(0.0, p_value))


def analyze_counts(counts: ExperimentCounts) -> SignificanceResult:
    """Run the significance test on validated experiment counts. Never raises."""
    n = counts.sample_size
    if n == 0:
        return SignificanceResult(
            control_rate=0.0,
            treatment_rate=0.0,
            z_score=0.0,
            p_value=1.0,
            is_significant=False,
            winner="inconclusive",
        )

    per_variant = n / 2
    control_rate = counts.control_conversions / per_variant
    treatment_rate = counts.treatment_conversions / per_variant

    pooled_rate = (counts.control_conversions + counts.treatment_conversions) / n
    se = math.sqrt(pooled_rate * (1 - pooled_rate) * (2 / n))
    z_score = abs(control_rate - treatment_rate) / se if se > 0 else 0.0

    p_value = two_tailed_p_value(z_score)
    is_significant = p_value < SIGNIFICANCE_LEVEL

    if not is_significant:
        winner = "inconclusive"
    elif treatment_rate > control_rate:
        winner = "treatment"
    else:
        winner = "control"

    return SignificanceResult(
        control_rate=control_rate,
        treatment_rate=treatment_rate,
        z_score=z_score,
        p_value=p_value,
        is_significant=is_significant,
        winner=winner,
    )


def analyze_experiment(
    sample_size: int, control_conversions: int, treatment_conversions: int
) -> SignificanceResult:
    """Decide whether treatment and control conversion rates differ significantly.

    Args:
        sample_size: Total observations across both variants
        control_conversions: Conversions recorded for the control variant
        treatment_conversions: Conversions recorded for the treatment variant

    Returns:
        SignificanceResult with rates, z-score, p-value and winner

    Raises:
        InvalidInputError: If a count is negative, not an integer or above
            MAX_COUNT, or the conversions exceed the sample size

    Example:
        >>> analyze_experiment(10000, 400, 600).winner
        'treatment'
        >>> analyze_experiment(0, 0, 0).winner
        'inconclusive'
    """
    counts = ExperimentCounts.from_counts(sample_size, control_conversions, treatment_conversions)
    return analyze_counts(counts)
