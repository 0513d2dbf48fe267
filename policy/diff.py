"""Compare the active rules configuration with a proposed policy."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from policy.config import Rule, RulesConfig


@dataclass(frozen=True)
class FrequencyChange:
    current: Optional[int]
    new: Optional[int]
    changed: bool


@dataclass(frozen=True)
class RuleChange:
    rule_id: str
    name: str
    tier: Optional[str] = None
    current_tier: Optional[str] = None
    new_tier: Optional[str] = None
    changes: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class PolicyDiff:
    validation_frequency_changes: Dict[str, FrequencyChange]
    new_rules: List[RuleChange]
    removed_rules: List[RuleChange]
    modified_rules: List[RuleChange]
    summary_of_changes: str
    impact_assessment: str


def diff_validation_frequencies(
    current: Dict[str, int],
    proposed: Dict[str, int],
) -> Dict[str, FrequencyChange]:
    """Per-tier comparison of validation frequencies in months."""
    changes: Dict[str, FrequencyChange] = {}
    for tier in _ordered_tiers(current, proposed):
        current_months = current.get(tier)
        new_months = proposed.get(tier)
        changes[tier] = FrequencyChange(
            current=current_months,
            new=new_months,
            changed=current_months != new_months,
        )
    return changes


def diff_rules_configs(current: RulesConfig, proposed: RulesConfig) -> PolicyDiff:
    """Describe what a proposed rules configuration would change."""
    frequency_changes = diff_validation_frequencies(
        current.validation_frequencies, proposed.validation_frequencies
    )

    current_rules = {rule.rule_id: rule for rule in current.rules}
    proposed_rules = {rule.rule_id: rule for rule in proposed.rules}

    new_rules = [
        RuleChange(rule_id=rule.rule_id, name=rule.name, tier=rule.tier)
        for rule in proposed.rules
        if rule.rule_id not in current_rules
    ]
    removed_rules = [
        RuleChange(rule_id=rule.rule_id, name=rule.name, tier=rule.tier)
        for rule in current.rules
        if rule.rule_id not in proposed_rules
    ]
    modified_rules: List[RuleChange] = []
    elevated = 0
    for rule in proposed.rules:
        previous = current_rules.get(rule.rule_id)
        if previous is None:
            continue
        changes = _describe_rule_changes(previous, rule, current, proposed)
        if not changes:
            continue
        if _severity(proposed, rule.tier) > _severity(current, previous.tier):
            elevated += 1
        modified_rules.append(
            RuleChange(
                rule_id=rule.rule_id,
                name=rule.name,
                current_tier=previous.tier,
                new_tier=rule.tier,
                changes=changes,
            )
        )

    summary = _summarize(frequency_changes, new_rules, removed_rules, modified_rules, elevated)
    impact = _assess_impact(frequency_changes, new_rules, removed_rules, elevated)
    if not summary:
        summary = "No significant changes detected."
        impact = "Policy is consistent with current configuration."

    return PolicyDiff(
        validation_frequency_changes=frequency_changes,
        new_rules=new_rules,
        removed_rules=removed_rules,
        modified_rules=modified_rules,
        summary_of_changes=summary,
        impact_assessment=impact,
    )


def has_significant_changes(diff: PolicyDiff) -> bool:
    """True when any validation frequency or rule differs."""
    frequency_changed = any(change.changed for change in diff.validation_frequency_changes.values())
    rules_changed = bool(diff.new_rules or diff.removed_rules or diff.modified_rules)
    return frequency_changed or rules_changed


def serialize_diff(diff: PolicyDiff) -> Dict[str, Any]:
    """Return a JSON-serializable view of a policy diff."""
    return {
        "validationFrequencyChanges": {
            tier: {"current": change.current, "new": change.new, "changed": change.changed}
            for tier, change in diff.validation_frequency_changes.items()
        },
        "newRules": [_serialize_added_or_removed(rule) for rule in diff.new_rules],
        "removedRules": [_serialize_added_or_removed(rule) for rule in diff.removed_rules],
        "modifiedRules": [
            {
                "id": rule.rule_id,
                "name": rule.name,
                "currentTier": rule.current_tier,
                "newTier": rule.new_tier,
                "changes": list(rule.changes),
            }
            for rule in diff.modified_rules
        ],
        "summaryOfChanges": diff.summary_of_changes,
        "impactAssessment": diff.impact_assessment,
        "hasSignificantChanges": has_significant_changes(diff),
    }


def _serialize_added_or_removed(rule: RuleChange) -> Dict[str, Any]:
    return {"id": rule.rule_id, "name": rule.name, "tier": rule.tier}


def _describe_rule_changes(
    previous: Rule,
    rule: Rule,
    current: RulesConfig,
    proposed: RulesConfig,
) -> List[str]:
    changes: List[str] = []
    if previous.tier != rule.tier:
        if _severity(proposed, rule.tier) > _severity(current, previous.tier):
            changes.append(f"Elevated from {previous.tier} to {rule.tier}")
        else:
            changes.append(f"Lowered from {previous.tier} to {rule.tier}")
    if previous.conditions != rule.conditions:
        changes.append("Conditions changed")
    if previous.effects.add_required_artifacts != rule.effects.add_required_artifacts:
        changes.append("Required artifacts changed")
    if previous.effects.add_risk_flags != rule.effects.add_risk_flags:
        changes.append("Risk flags changed")
    if previous.effects.triggered_criteria != rule.effects.triggered_criteria:
        changes.append("Triggered criteria text changed")
    return changes


def _severity(config: RulesConfig, tier: str) -> int:
    tier_def = config.tiers.get(tier)
    return tier_def.severity if tier_def else 0


def _ordered_tiers(current: Dict[str, int], proposed: Dict[str, int]) -> List[str]:
    tiers: List[str] = []
    for tier in list(current) + list(proposed):
        if tier not in tiers:
            tiers.append(tier)
    return tiers


def _summarize(
    frequency_changes: Dict[str, FrequencyChange],
    new_rules: List[RuleChange],
    removed_rules: List[RuleChange],
    modified_rules: List[RuleChange],
    elevated: int,
) -> str:
    parts: List[str] = []
    changed = [
        f"{tier}: {change.current}mo -> {change.new}mo"
        for tier, change in frequency_changes.items()
        if change.changed
    ]
    if changed:
        parts.append(f"Validation frequency changes: {', '.join(changed)}.")
    if new_rules:
        parts.append(f"{len(new_rules)} new tiering rule(s) added.")
    if removed_rules:
        parts.append(f"{len(removed_rules)} tiering rule(s) removed.")
    if elevated:
        parts.append(f"{elevated} rule(s) now elevate to higher tiers.")
    other_modified = len(modified_rules) - elevated
    if other_modified:
        parts.append(f"{other_modified} other rule(s) modified.")
    return " ".join(parts)


def _assess_impact(
    frequency_changes: Dict[str, FrequencyChange],
    new_rules: List[RuleChange],
    removed_rules: List[RuleChange],
    elevated: int,
) -> str:
    parts: List[str] = []
    shorter = any(
        change.changed
        and change.current is not None
        and change.new is not None
        and change.new < change.current
        for change in frequency_changes.values()
    )
    if shorter:
        parts.append("Shorter validation cycles will require more frequent reviews.")
    if new_rules or elevated:
        parts.append("New or modified rules may cause some models to be assigned higher tiers.")
    if removed_rules:
        parts.append("Removed rules may allow some models to move to lower tiers.")
    return " ".join(parts)
