"""Immutable configuration consumed by the rules engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from policy.conditions import Condition


MODEL_YES = "Yes"
MODEL_NO = "No"
MODEL_LIKE = "Model-like"
MODEL_RESULTS = (MODEL_YES, MODEL_NO, MODEL_LIKE)

DEFAULT_VALIDATION_FREQUENCIES: Dict[str, int] = {"T3": 12, "T2": 24, "T1": 36}


@dataclass(frozen=True)
class TierDefinition:
    name: str
    description: str
    severity: int
    color: Optional[str] = None


@dataclass(frozen=True)
class RuleEffects:
    add_required_artifacts: Tuple[str, ...] = ()
    add_risk_flags: Tuple[str, ...] = ()
    triggered_criteria: str = ""


@dataclass(frozen=True)
class Rule:
    rule_id: str
    name: str
    tier: str
    conditions: Condition
    effects: RuleEffects
    description: str = ""


@dataclass(frozen=True)
class ModelDefinitionCriterion:
    criterion_id: str
    conditions: Condition
    result: str
    name: str = ""
    description: str = ""


@dataclass(frozen=True)
class ArtifactDefinition:
    artifact_id: str
    name: str
    category: str
    description: str = ""
    owner_role: str = ""
    what_good_looks_like: str = ""
    required_for_tiers: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ArtifactCategory:
    order: int
    description: str = ""


@dataclass(frozen=True)
class RulesConfig:
    tiers: Dict[str, TierDefinition]
    default_tier: str
    rules: Tuple[Rule, ...]
    model_definition_criteria: Tuple[ModelDefinitionCriterion, ...] = ()
    validation_frequencies: Dict[str, int] = field(
        default_factory=lambda: dict(DEFAULT_VALIDATION_FREQUENCIES)
    )


@dataclass(frozen=True)
class ArtifactsConfig:
    # Insertion order is the configured order; tier-required artifacts follow it.
    artifacts: Dict[str, ArtifactDefinition]
    categories: Dict[str, ArtifactCategory] = field(default_factory=dict)


@dataclass(frozen=True)
class EngineConfig:
    rules: RulesConfig
    artifacts: ArtifactsConfig
