"""Rules engine mapping a use case record to a governance decision."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Sequence

import structlog

from governance.objects import UseCaseRecord
from policy.conditions import evaluate_condition
from policy.config import (
    MODEL_LIKE,
    MODEL_NO,
    MODEL_YES,
    ArtifactDefinition,
    ArtifactsConfig,
    EngineConfig,
    ModelDefinitionCriterion,
    Rule,
    RulesConfig,
    TierDefinition,
)

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class TriggeredRule:
    rule_id: str
    name: str
    tier: str
    triggered_criteria: str


@dataclass(frozen=True)
class DecisionResult:
    is_model: str
    tier: str
    triggered_rules: List[TriggeredRule]
    rationale_summary: str
    required_artifacts: List[str]
    missing_evidence: List[str]
    risk_flags: List[str]


# Artifact id -> check that passes when the record shows the evidence exists.
EVIDENCE_CHECKS: Dict[str, Callable[[UseCaseRecord], bool]] = {
    "DataRetentionPolicy": lambda record: record.retention_policy_defined is True,
    "AccessControlMatrix": lambda record: record.access_controls_defined is True,
    "FallbackProcedure": lambda record: record.fallback_plan_defined is True,
    "MonitoringPlan": lambda record: _monitoring_defined(record),
    "BasicMonitoringPlan": lambda record: _monitoring_defined(record),
    "VendorDueDiligence": lambda record: (
        not record.vendor_involved or "Vendor doc" in record.attachment_types
    ),
}

# Artifacts that count as missing while the use case has no attachments at all.
ATTACHMENT_EVIDENCE_ARTIFACTS = frozenset(
    {
        "ValidationPlan",
        "ModelCard",
        "FairnessAssessment",
        "BiasTestingResults",
        "LLMEvalSuite",
        "GuardrailsDesign",
        "HallucinationTestResults",
        "PromptInjectionTests",
    }
)


def evaluate_use_case(record: UseCaseRecord, config: EngineConfig) -> DecisionResult:
    """Evaluate a use case record against the rules and artifacts configuration."""
    rules_config = config.rules

    triggered = select_triggered_rules(record, rules_config.rules)
    tier = resolve_tier(triggered, rules_config.default_tier, rules_config.tiers)
    is_model = determine_is_model(record, rules_config.model_definition_criteria)
    risk_flags = collect_risk_flags(triggered)
    required_artifacts = collect_required_artifacts(triggered, tier, config.artifacts)
    missing_evidence = detect_missing_evidence(record, required_artifacts, config.artifacts)
    rationale = generate_rationale(tier, is_model, triggered, risk_flags, rules_config.tiers)

    logger.debug(
        "use_case_evaluated",
        tier=tier,
        is_model=is_model,
        triggered_rules=[rule.rule_id for rule in triggered],
        missing_evidence=len(missing_evidence),
    )

    return DecisionResult(
        is_model=is_model,
        tier=tier,
        triggered_rules=[
            TriggeredRule(
                rule_id=rule.rule_id,
                name=rule.name,
                tier=rule.tier,
                triggered_criteria=rule.effects.triggered_criteria,
            )
            for rule in triggered
        ],
        rationale_summary=rationale,
        required_artifacts=required_artifacts,
        missing_evidence=missing_evidence,
        risk_flags=risk_flags,
    )


def select_triggered_rules(record: UseCaseRecord, rules: Sequence[Rule]) -> List[Rule]:
    """Return the rules whose conditions hold, in configured order."""
    return [rule for rule in rules if evaluate_condition(rule.conditions, record)]


def resolve_tier(
    triggered_rules: Sequence[Rule],
    default_tier: str,
    tiers: Dict[str, TierDefinition],
) -> str:
    """Pick the most severe tier among the default and the triggered rules.

    Only a strictly greater severity replaces the running maximum, so the
    first rule to reach the top severity decides the tier.
    """
    default = tiers.get(default_tier)
    max_severity = default.severity if default else 0
    resolved = default_tier

    for rule in triggered_rules:
        tier_def = tiers.get(rule.tier)
        if tier_def and tier_def.severity > max_severity:
            max_severity = tier_def.severity
            resolved = rule.tier

    return resolved


def determine_is_model(
    record: UseCaseRecord,
    criteria: Iterable[ModelDefinitionCriterion],
) -> str:
    """Classify the use case as a model, model-like, or not a model."""
    is_model = MODEL_NO
    for criterion in criteria:
        if not evaluate_condition(criterion.conditions, record):
            continue
        if criterion.result == MODEL_YES:
            return MODEL_YES
        if criterion.result == MODEL_LIKE:
            is_model = MODEL_LIKE
    return is_model


def collect_required_artifacts(
    triggered_rules: Sequence[Rule],
    tier: str,
    artifacts: ArtifactsConfig,
) -> List[str]:
    """Union of rule-required and tier-required artifact ids, first-seen order."""
    required: List[str] = []
    for rule in triggered_rules:
        for artifact_id in rule.effects.add_required_artifacts:
            _append_unique(required, artifact_id)
    for artifact in artifacts.artifacts.values():
        if tier in artifact.required_for_tiers:
            _append_unique(required, artifact.artifact_id)
    return required


def collect_risk_flags(triggered_rules: Sequence[Rule]) -> List[str]:
    """Union of the risk flags raised by triggered rules, first-seen order."""
    flags: List[str] = []
    for rule in triggered_rules:
        for flag in rule.effects.add_risk_flags:
            _append_unique(flags, flag)
    return flags


def detect_missing_evidence(
    record: UseCaseRecord,
    required_artifacts: Sequence[str],
    artifacts: ArtifactsConfig,
) -> List[str]:
    """Return required artifacts whose evidence the record does not show.

    Two independent checks apply: a structural check on the record for
    artifacts listed in ``EVIDENCE_CHECKS``, and an attachment-presence
    check for ``ATTACHMENT_EVIDENCE_ARTIFACTS``. Ids without an artifact
    definition are skipped.
    """
    missing: List[str] = []
    for artifact_id in required_artifacts:
        if artifact_id not in artifacts.artifacts:
            continue
        check = EVIDENCE_CHECKS.get(artifact_id)
        if check is not None and not check(record):
            _append_unique(missing, artifact_id)
        if artifact_id in ATTACHMENT_EVIDENCE_ARTIFACTS and not record.has_attachments:
            _append_unique(missing, artifact_id)
    return missing


def generate_rationale(
    tier: str,
    is_model: str,
    triggered_rules: Sequence[Rule],
    risk_flags: Sequence[str],
    tiers: Dict[str, TierDefinition],
) -> str:
    """Build the templated, deterministic rationale text for a decision."""
    parts: List[str] = []

    if is_model == MODEL_YES:
        parts.append("This use case qualifies as a model under MRM policy.")
    elif is_model == MODEL_LIKE:
        parts.append(
            "This use case exhibits model-like characteristics and requires enhanced oversight."
        )
    else:
        parts.append("This use case does not meet the model definition criteria.")

    tier_def = tiers.get(tier)
    if tier_def:
        parts.append(f"Risk tier assigned: {tier} ({tier_def.name}) - {tier_def.description}.")
    else:
        parts.append(f"Risk tier assigned: {tier}.")

    if triggered_rules:
        parts.append("Triggered criteria:")
        for rule in triggered_rules:
            parts.append(f"- {rule.effects.triggered_criteria}")

    if risk_flags:
        parts.append(f"Risk flags identified: {', '.join(risk_flags)}.")

    return "\n".join(parts)


def get_artifact_details(
    artifact_ids: Iterable[str],
    artifacts: ArtifactsConfig,
) -> List[ArtifactDefinition]:
    """Resolve artifact ids to definitions, dropping unknown ids."""
    return [artifacts.artifacts[artifact_id] for artifact_id in artifact_ids if artifact_id in artifacts.artifacts]


def get_tier_info(tier: str, rules: RulesConfig) -> Optional[TierDefinition]:
    """Look up a tier definition, or None when the tier is not configured."""
    return rules.tiers.get(tier)


def _monitoring_defined(record: UseCaseRecord) -> bool:
    cadence = record.monitoring_cadence
    return bool(cadence) and cadence != "None"


def _append_unique(values: List[str], value: str) -> None:
    if value not in values:
        values.append(value)
