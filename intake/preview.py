"""Live tier preview for intake forms that have not been submitted yet."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from governance.mapper import flatten_intake_form
from policy.config import ArtifactDefinition, EngineConfig, TierDefinition
from policy.engine import (
    TriggeredRule,
    collect_required_artifacts,
    collect_risk_flags,
    determine_is_model,
    get_artifact_details,
    resolve_tier,
    select_triggered_rules,
)


@dataclass(frozen=True)
class TierPreview:
    tier: str
    tier_info: Optional[TierDefinition]
    is_model: str
    triggered_rules: List[TriggeredRule]
    required_artifacts: List[ArtifactDefinition]
    risk_flags: List[str]
    is_preview: bool = True


def preview_tier(form: Mapping[str, Any], config: EngineConfig) -> TierPreview:
    """Tier an intake form. Forms carry no attachments, so no missing evidence is computed."""
    record = flatten_intake_form(form)
    rules_config = config.rules

    triggered = select_triggered_rules(record, rules_config.rules)
    tier = resolve_tier(triggered, rules_config.default_tier, rules_config.tiers)
    is_model = determine_is_model(record, rules_config.model_definition_criteria)
    risk_flags = collect_risk_flags(triggered)
    artifact_ids = collect_required_artifacts(triggered, tier, config.artifacts)

    return TierPreview(
        tier=tier,
        tier_info=rules_config.tiers.get(tier),
        is_model=is_model,
        triggered_rules=[
            TriggeredRule(
                rule_id=rule.rule_id,
                name=rule.name,
                tier=rule.tier,
                triggered_criteria=rule.effects.triggered_criteria,
            )
            for rule in triggered
        ],
        required_artifacts=get_artifact_details(artifact_ids, config.artifacts),
        risk_flags=risk_flags,
    )


def serialize_preview(preview: TierPreview) -> Dict[str, Any]:
    """Return the camelCase JSON view of a tier preview."""
    tier_info = preview.tier_info
    return {
        "tier": preview.tier,
        "tierInfo": {
            "name": tier_info.name,
            "description": tier_info.description,
            "color": tier_info.color,
        }
        if tier_info
        else None,
        "isModel": preview.is_model,
        "triggeredRules": [
            {
                "id": rule.rule_id,
                "name": rule.name,
                "tier": rule.tier,
                "triggeredCriteria": rule.triggered_criteria,
            }
            for rule in preview.triggered_rules
        ],
        "requiredArtifacts": [
            {
                "id": artifact.artifact_id,
                "name": artifact.name,
                "category": artifact.category,
                "description": artifact.description,
                "ownerRole": artifact.owner_role,
            }
            for artifact in preview.required_artifacts
        ],
        "riskFlags": list(preview.risk_flags),
        "isPreview": preview.is_preview,
    }
