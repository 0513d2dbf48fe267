"""Load-time validation of rule and artifact configuration.

Validation runs on the raw YAML mappings before they are parsed, so every
problem is reported at once with a message naming the offending rule,
criterion or artifact. The engine never re-checks any of this.
"""

from __future__ import annotations

from typing import Any, Dict, List, Set

from governance.objects import RECORD_FIELDS
from policy.conditions import OPERATORS
from policy.config import MODEL_RESULTS, EngineConfig


def validate_rules_config(raw: Any) -> List[str]:
    """Return per-field errors for a raw rules configuration mapping."""
    if not isinstance(raw, dict):
        return ["Rules configuration must be a mapping."]

    errors: List[str] = []
    tiers = raw.get("tiers")
    if not isinstance(tiers, dict) or not tiers:
        errors.append("No tiers defined in configuration")
        tiers = {}
    for tier_id, tier in tiers.items():
        if not isinstance(tier, dict):
            errors.append(f'Tier "{tier_id}" must be a mapping')
            continue
        if not tier.get("name"):
            errors.append(f'Tier "{tier_id}" missing name')
        severity = tier.get("severity")
        if not isinstance(severity, int) or isinstance(severity, bool):
            errors.append(f'Tier "{tier_id}" severity must be an integer')

    default_tier = raw.get("defaultTier")
    if not isinstance(default_tier, str) or default_tier not in tiers:
        errors.append(f'Default tier "{default_tier}" not found in tier definitions')

    rules = raw.get("rules") or []
    if not isinstance(rules, list):
        errors.append("Rules must be a list")
        rules = []
    seen_rule_ids: Set[str] = set()
    for index, rule in enumerate(rules):
        if not isinstance(rule, dict):
            errors.append(f"Rule at index {index} must be a mapping")
            continue
        rule_id = rule.get("id")
        if not rule_id:
            errors.append(f"Rule at index {index} missing id")
        elif not isinstance(rule_id, str):
            errors.append(f'Rule at index {index} has invalid id "{rule_id}"')
        elif rule_id in seen_rule_ids:
            errors.append(f'Duplicate rule id "{rule_id}"')
        else:
            seen_rule_ids.add(rule_id)
        label = f'Rule "{rule_id or index}"'
        rule_tier = rule.get("tier")
        if not isinstance(rule_tier, str) or rule_tier not in tiers:
            errors.append(f'{label} has invalid tier "{rule_tier}"')
        if "conditions" not in rule or rule["conditions"] is None:
            errors.append(f"{label} missing conditions")
        else:
            errors.extend(_validate_condition(rule["conditions"], label))
        effects = rule.get("effects")
        if not isinstance(effects, dict):
            errors.append(f"{label} missing effects")
        else:
            errors.extend(_validate_effects(effects, label))

    criteria = raw.get("modelDefinitionCriteria") or []
    if not isinstance(criteria, list):
        errors.append("modelDefinitionCriteria must be a list")
        criteria = []
    for index, criterion in enumerate(criteria):
        if not isinstance(criterion, dict):
            errors.append(f"Model definition criterion at index {index} must be a mapping")
            continue
        label = f'Model definition criterion "{criterion.get("id") or index}"'
        if not criterion.get("id"):
            errors.append(f"Model definition criterion at index {index} missing id")
        if criterion.get("result") not in MODEL_RESULTS:
            errors.append(
                f'{label} has invalid result "{criterion.get("result")}" '
                f"(expected one of {', '.join(MODEL_RESULTS)})"
            )
        if criterion.get("conditions") is None:
            errors.append(f"{label} missing conditions")
        else:
            errors.extend(_validate_condition(criterion["conditions"], label))

    frequencies = raw.get("validationFrequencies")
    if frequencies is not None:
        if not isinstance(frequencies, dict):
            errors.append("validationFrequencies must be a mapping of tier to months")
        else:
            for tier_id, months in frequencies.items():
                if tier_id not in tiers:
                    errors.append(f'validationFrequencies references unknown tier "{tier_id}"')
                if not isinstance(months, int) or isinstance(months, bool) or months <= 0:
                    errors.append(f'validationFrequencies for "{tier_id}" must be a positive integer')

    return errors


def validate_artifacts_config(raw: Any) -> List[str]:
    """Return per-field errors for a raw artifacts configuration mapping."""
    if not isinstance(raw, dict):
        return ["Artifacts configuration must be a mapping."]

    errors: List[str] = []
    artifacts = raw.get("artifacts")
    if not isinstance(artifacts, dict) or not artifacts:
        errors.append("No artifacts defined in configuration")
        artifacts = {}

    seen_ids: Dict[str, str] = {}
    for key, artifact in artifacts.items():
        if not isinstance(artifact, dict):
            errors.append(f'Artifact "{key}" must be a mapping')
            continue
        artifact_id = artifact.get("id")
        if not artifact_id:
            errors.append(f'Artifact "{key}" missing id')
        elif not isinstance(artifact_id, str):
            errors.append(f'Artifact "{key}" has invalid id "{artifact_id}"')
        else:
            if artifact_id != key:
                errors.append(f'Artifact "{key}" has mismatched id "{artifact_id}"')
            if artifact_id in seen_ids:
                errors.append(
                    f'Duplicate artifact id "{artifact_id}" (keys "{seen_ids[artifact_id]}" and "{key}")'
                )
            else:
                seen_ids[artifact_id] = key
        if not artifact.get("name"):
            errors.append(f'Artifact "{key}" missing name')
        if not artifact.get("category"):
            errors.append(f'Artifact "{key}" missing category')
        tiers = artifact.get("requiredForTiers")
        if tiers is not None and not isinstance(tiers, list):
            errors.append(f'Artifact "{key}" requiredForTiers must be a list')

    categories = raw.get("categories")
    if categories is not None and not isinstance(categories, dict):
        errors.append("Artifact categories must be a mapping")
    elif categories:
        for name, category in categories.items():
            order = category.get("order") if isinstance(category, dict) else None
            if order is not None and (not isinstance(order, int) or isinstance(order, bool)):
                errors.append(f'Category "{name}" order must be an integer')

    return errors


def validate_engine_config(config: EngineConfig) -> List[str]:
    """Check references between the parsed rules and artifacts configurations."""
    errors: List[str] = []
    tiers = config.rules.tiers
    artifacts = config.artifacts.artifacts

    for rule in config.rules.rules:
        for artifact_id in rule.effects.add_required_artifacts:
            if artifact_id not in artifacts:
                errors.append(f'Rule "{rule.rule_id}" requires unknown artifact "{artifact_id}"')

    for artifact in artifacts.values():
        for tier_id in artifact.required_for_tiers:
            if tier_id not in tiers:
                errors.append(
                    f'Artifact "{artifact.artifact_id}" is required for unknown tier "{tier_id}"'
                )

    return errors


def _validate_condition(raw: Any, label: str) -> List[str]:
    if isinstance(raw, list):
        return _validate_children(raw, label, "all")
    if not isinstance(raw, dict):
        return [f"{label} has a condition that is not a mapping"]
    if "all" in raw:
        return _validate_children(raw["all"], label, "all")
    if "any" in raw:
        return _validate_children(raw["any"], label, "any")

    errors: List[str] = []
    field_name = raw.get("field")
    operator = raw.get("operator")
    if not field_name:
        errors.append(f"{label} has a condition missing field")
    elif not isinstance(field_name, str) or field_name not in RECORD_FIELDS:
        errors.append(f'{label} references unknown field "{field_name}"')
    if not operator:
        errors.append(f"{label} has a condition missing operator")
    elif not isinstance(operator, str) or operator not in OPERATORS:
        errors.append(f'{label} uses unknown operator "{operator}"')
    elif operator in {"in", "notIn"} and not isinstance(raw.get("value"), list):
        errors.append(f'{label} operator "{operator}" on "{field_name}" requires a list value')
    return errors


def _validate_children(children: Any, label: str, combinator: str) -> List[str]:
    if not isinstance(children, list):
        return [f'{label} "{combinator}" must be a list of conditions']
    errors: List[str] = []
    for child in children:
        errors.extend(_validate_condition(child, label))
    return errors


def _validate_effects(effects: Dict[str, Any], label: str) -> List[str]:
    errors: List[str] = []
    for key in ("addRequiredArtifacts", "addRiskFlags"):
        value = effects.get(key)
        if value is not None and not isinstance(value, list):
            errors.append(f"{label} effects.{key} must be a list")
    criteria = effects.get("triggeredCriteria")
    if criteria is not None and not isinstance(criteria, str):
        errors.append(f"{label} effects.triggeredCriteria must be text")
    return errors
