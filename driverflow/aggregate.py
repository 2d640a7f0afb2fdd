"""Status aggregation and risk rules for workflow runs.

Every rule here is a pure function of the recorded step outcomes. Each
workflow declares which step results it reads:

- background check reads ``criminal.result.summary.hasCriminalHistory``
  (or a ``conviction`` record in ``criminal.result.results``),
  ``driving.result.summary.totalViolations`` and
  ``employment.result.summary.verified``;
- insurance reads ``policy.result.policyDetails.status`` and
  ``policy.result.coverage.liability``;
- onboarding reads only step statuses.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from .constants import (
    BACKGROUND_CHECK_WORKFLOW,
    INSURANCE_WORKFLOW,
    LIABILITY_FLOOR,
    ONBOARDING_WORKFLOW,
)
from .contracts import Aggregate, OverallStatus, RunSummary, StepOutcome

RISK_RANK = {"low": 0, "medium": 1, "high": 2}

MAX_DRIVING_VIOLATIONS = 3

SummaryRule = Callable[[Mapping[str, StepOutcome], RunSummary], None]


def overall_status(steps: Mapping[str, StepOutcome], total: Optional[int] = None) -> OverallStatus:
    """Derive the overall status from step outcomes.

    ``completed`` when every scheduled step completed, ``failed`` when none
    did (including the empty case), ``partial`` otherwise.
    """
    total = len(steps) if total is None else total
    completed = sum(1 for outcome in steps.values() if outcome.completed)
    if total == 0 or completed == 0:
        return "failed"
    if completed == total:
        return "completed"
    return "partial"


def _dig(value: Any, *keys: str) -> Any:
    for key in keys:
        if not isinstance(value, Mapping):
            return None
        value = value.get(key)
    return value


def _escalate(summary: RunSummary, level: str) -> None:
    if RISK_RANK[level] > RISK_RANK[summary.risk_level or "low"]:
        summary.risk_level = level


def _completed_result(steps: Mapping[str, StepOutcome], name: str) -> Optional[Any]:
    outcome = steps.get(name)
    if outcome is None or not outcome.completed:
        return None
    return outcome.result if outcome.result is not None else {}


# ----------------------------------------------------------------------
# Background check
def _has_conviction(result: Any) -> bool:
    if _dig(result, "summary", "hasCriminalHistory"):
        return True
    records = _dig(result, "results")
    if isinstance(records, list):
        return any(_dig(record, "type") == "conviction" for record in records)
    return False


def summarize_background_check(steps: Mapping[str, StepOutcome], summary: RunSummary) -> None:
    summary.risk_level = "low"

    criminal = _completed_result(steps, "criminal")
    if criminal is not None and _has_conviction(criminal):
        summary.flags.append("Criminal history detected")
        _escalate(summary, "high")

    driving = _completed_result(steps, "driving")
    if driving is not None:
        violations = _dig(driving, "summary", "totalViolations") or 0
        if isinstance(violations, (int, float)) and violations > MAX_DRIVING_VIOLATIONS:
            summary.flags.append("Multiple driving violations")
            _escalate(summary, "medium")

    employment = _completed_result(steps, "employment")
    if employment is not None and not _dig(employment, "summary", "verified"):
        summary.flags.append("Employment verification failed")
        _escalate(summary, "medium")

    if summary.risk_level == "high":
        summary.recommendations += [
            "Manual review required",
            "Additional documentation may be needed",
        ]
    elif summary.risk_level == "medium":
        summary.recommendations += [
            "Review specific flagged items",
            "Consider additional verification",
        ]
    else:
        summary.recommendations.append("Standard onboarding process")


# ----------------------------------------------------------------------
# Insurance
COVERAGE_RECOMMENDATIONS = {
    "adequate": ["Insurance verification passed", "Standard onboarding process"],
    "insufficient": ["Increase liability coverage", "Contact insurance provider"],
    "expired": ["Renew insurance policy", "Provide updated certificate"],
    "unknown": ["Manual verification required", "Provide additional documentation"],
}

COVERAGE_FLAGS = {
    "insufficient": "Insufficient liability coverage",
    "expired": "Insurance policy expired",
    "unknown": "Unable to verify insurance status",
}


def summarize_insurance(steps: Mapping[str, StepOutcome], summary: RunSummary) -> None:
    policy = _completed_result(steps, "policy")
    status = _dig(policy, "policyDetails", "status")
    liability = _dig(policy, "coverage", "liability")

    active = status == "active"
    expired = status == "expired"
    insufficient = isinstance(liability, (int, float)) and liability < LIABILITY_FLOOR

    # First matching branch wins: adequate, insufficient, expired, unknown
    if active and not expired and not insufficient:
        coverage = "adequate"
    elif active and insufficient:
        coverage = "insufficient"
    elif expired:
        coverage = "expired"
    else:
        coverage = "unknown"

    summary.coverage_status = coverage
    if coverage in COVERAGE_FLAGS:
        summary.flags.append(COVERAGE_FLAGS[coverage])
    summary.recommendations += COVERAGE_RECOMMENDATIONS[coverage]


# ----------------------------------------------------------------------
# Onboarding
STEP_REMEDIATION: Dict[str, List[str]] = {
    "backgroundCheck": [
        "Review background check requirements",
        "Provide additional identification documents",
    ],
    "insuranceVerification": [
        "Verify insurance policy information",
        "Ensure policy is active and not expired",
        "Check coverage limits meet requirements",
    ],
    "payment": [
        "Verify payment method information",
        "Ensure sufficient funds are available",
        "Check for any payment restrictions",
    ],
    "documentStorage": [
        "Ensure all required documents are provided",
        "Check document format and size requirements",
        "Verify document authenticity",
    ],
}


def estimated_completion(pending_steps: int) -> str:
    if pending_steps == 0:
        return "Immediate"
    if pending_steps <= 2:
        return "1-2 business days"
    return "3-5 business days"


def summarize_onboarding(steps: Mapping[str, StepOutcome], summary: RunSummary) -> None:
    if summary.failed_steps > 2:
        summary.risk_level = "high"
        summary.flags.append("Multiple critical steps failed")
    elif summary.failed_steps > 0:
        summary.risk_level = "medium"
        summary.flags.append("Some steps require attention")
    else:
        summary.risk_level = "low"

    summary.estimated_completion = estimated_completion(summary.pending_steps)

    for step_name, remediation in STEP_REMEDIATION.items():
        outcome = steps.get(step_name)
        if outcome is not None and not outcome.completed:
            summary.recommendations += remediation

    if summary.completed_steps == summary.total_steps:
        summary.recommendations += [
            "Onboarding completed successfully",
            "Driver is ready for activation",
        ]
    elif summary.completed_steps > summary.total_steps / 2:
        summary.recommendations += [
            "Onboarding is mostly complete",
            "Address remaining issues to finish",
        ]
    else:
        summary.recommendations += [
            "Onboarding requires significant attention",
            "Manual review may be necessary",
        ]


SUMMARY_RULES: Dict[str, SummaryRule] = {
    BACKGROUND_CHECK_WORKFLOW: summarize_background_check,
    INSURANCE_WORKFLOW: summarize_insurance,
    ONBOARDING_WORKFLOW: summarize_onboarding,
}


def aggregate(
    workflow: str,
    steps: Mapping[str, StepOutcome],
    scheduled: Optional[Iterable[str]] = None,
) -> Aggregate:
    """Compute overall status, summary and recommendations for a run.

    Args:
        workflow: Name of the workflow whose rule table applies.
        steps: Recorded outcomes keyed by step name.
        scheduled: Optional names of all scheduled steps; names without a
            recorded outcome count as pending.
    """
    try:
        rule = SUMMARY_RULES[workflow]
    except KeyError:
        raise ValueError(f"Unsupported workflow: {workflow}") from None

    names = set(steps) | set(scheduled or ())
    completed = sum(1 for outcome in steps.values() if outcome.completed)
    failed = sum(1 for outcome in steps.values() if not outcome.completed)
    summary = RunSummary(
        total_steps=len(names),
        completed_steps=completed,
        failed_steps=failed,
        pending_steps=len(names) - completed - failed,
    )
    rule(steps, summary)
    return Aggregate(
        overall_status=overall_status(steps, total=len(names)),
        summary=summary,
        recommendations=list(summary.recommendations),
    )
