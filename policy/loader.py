"""Load rules and artifacts configuration from YAML."""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

import structlog
import yaml

from governance.errors import ConfigError, ConfigValidationError
from policy.conditions import parse_condition
from policy.config import (
    DEFAULT_VALIDATION_FREQUENCIES,
    ArtifactCategory,
    ArtifactDefinition,
    ArtifactsConfig,
    EngineConfig,
    ModelDefinitionCriterion,
    Rule,
    RuleEffects,
    RulesConfig,
    TierDefinition,
)
from policy.validation import (
    validate_artifacts_config,
    validate_engine_config,
    validate_rules_config,
)

logger = structlog.get_logger(__name__)

RULES_FILE = "rules.yaml"
ARTIFACTS_FILE = "artifacts.yaml"


def load_rules_config_from_yaml(content: str, source: Optional[str] = None) -> RulesConfig:
    """Parse and validate a rules configuration from a YAML string."""
    raw = _safe_load(content, source)
    errors = validate_rules_config(raw)
    if errors:
        raise ConfigValidationError(errors, source=source)
    return _parse_rules_config(raw)


def load_rules_config_from_file(path: str | Path) -> RulesConfig:
    """Parse and validate a rules configuration from a YAML file."""
    return load_rules_config_from_yaml(_read_text(path), source=str(path))


def load_artifacts_config_from_yaml(content: str, source: Optional[str] = None) -> ArtifactsConfig:
    """Parse and validate an artifacts configuration from a YAML string."""
    raw = _safe_load(content, source)
    errors = validate_artifacts_config(raw)
    if errors:
        raise ConfigValidationError(errors, source=source)
    return _parse_artifacts_config(raw)


def load_artifacts_config_from_file(path: str | Path) -> ArtifactsConfig:
    """Parse and validate an artifacts configuration from a YAML file."""
    return load_artifacts_config_from_yaml(_read_text(path), source=str(path))


def load_engine_config(config_dir: str | Path) -> EngineConfig:
    """Load ``rules.yaml`` and ``artifacts.yaml`` from a directory and cross-check them."""
    directory = Path(config_dir)
    config = EngineConfig(
        rules=load_rules_config_from_file(directory / RULES_FILE),
        artifacts=load_artifacts_config_from_file(directory / ARTIFACTS_FILE),
    )
    errors = validate_engine_config(config)
    if errors:
        raise ConfigValidationError(errors, source=str(directory))
    logger.info(
        "config_loaded",
        config_dir=str(directory),
        rules=len(config.rules.rules),
        tiers=len(config.rules.tiers),
        artifacts=len(config.artifacts.artifacts),
    )
    return config


def load_proposed_rules_config(path: str | Path, artifacts: ArtifactsConfig) -> RulesConfig:
    """Load a proposed rules file and cross-check it against the active artifacts."""
    rules = load_rules_config_from_file(path)
    errors = validate_engine_config(EngineConfig(rules=rules, artifacts=artifacts))
    if errors:
        raise ConfigValidationError(errors, source=str(path))
    return rules


def check_config_dir(config_dir: str | Path) -> List[str]:
    """Return every configuration problem in a directory without raising."""
    try:
        load_engine_config(config_dir)
    except ConfigValidationError as exc:
        return list(exc.errors)
    except ConfigError as exc:
        return [exc.message]
    return []


class ConfigCache:
    """Process-wide holder for the loaded configuration.

    The engine never reads from here; callers fetch the config and pass it
    in. ``reload`` swaps in a freshly loaded config only when it validates,
    so a bad edit on disk leaves the previous config in service.
    """

    def __init__(self, config_dir: str | Path):
        self.config_dir = Path(config_dir)
        self._config: Optional[EngineConfig] = None
        self._lock = threading.Lock()

    def get(self) -> EngineConfig:
        with self._lock:
            if self._config is None:
                self._config = load_engine_config(self.config_dir)
            return self._config

    def reload(self) -> EngineConfig:
        config = load_engine_config(self.config_dir)
        with self._lock:
            self._config = config
        logger.info("config_reloaded", config_dir=str(self.config_dir))
        return config

    def clear(self) -> None:
        with self._lock:
            self._config = None


def _read_text(path: str | Path) -> str:
    try:
        return Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(
            f"Unable to read configuration file {path}",
            details={"path": str(path), "reason": str(exc)},
        ) from exc


def _safe_load(content: str, source: Optional[str]) -> Any:
    try:
        raw = yaml.safe_load(content)
    except yaml.YAMLError as exc:
        raise ConfigError(
            f"Invalid YAML in {source or 'configuration'}",
            details={"source": source, "reason": str(exc)},
        ) from exc
    if not isinstance(raw, dict):
        raise ConfigError(f"Configuration in {source or 'input'} must be a YAML mapping.")
    return raw


def _parse_rules_config(raw: Dict[str, Any]) -> RulesConfig:
    tiers = {
        str(tier_id): TierDefinition(
            name=str(tier["name"]),
            description=str(tier.get("description", "")),
            severity=int(tier["severity"]),
            color=tier.get("color"),
        )
        for tier_id, tier in raw["tiers"].items()
    }
    frequencies = dict(DEFAULT_VALIDATION_FREQUENCIES)
    frequencies.update(raw.get("validationFrequencies") or {})
    return RulesConfig(
        tiers=tiers,
        default_tier=str(raw["defaultTier"]),
        rules=tuple(_parse_rule(item) for item in raw.get("rules") or []),
        model_definition_criteria=tuple(
            _parse_criterion(item) for item in raw.get("modelDefinitionCriteria") or []
        ),
        validation_frequencies=frequencies,
    )


def _parse_rule(raw: Dict[str, Any]) -> Rule:
    effects = raw["effects"]
    return Rule(
        rule_id=str(raw["id"]),
        name=str(raw.get("name", raw["id"])),
        description=str(raw.get("description", "")),
        tier=str(raw["tier"]),
        conditions=parse_condition(raw["conditions"]),
        effects=RuleEffects(
            add_required_artifacts=tuple(str(item) for item in effects.get("addRequiredArtifacts") or []),
            add_risk_flags=tuple(str(item) for item in effects.get("addRiskFlags") or []),
            triggered_criteria=str(effects.get("triggeredCriteria") or ""),
        ),
    )


def _parse_criterion(raw: Dict[str, Any]) -> ModelDefinitionCriterion:
    return ModelDefinitionCriterion(
        criterion_id=str(raw["id"]),
        name=str(raw.get("name", "")),
        description=str(raw.get("description", "")),
        conditions=parse_condition(raw["conditions"]),
        result=str(raw["result"]),
    )


def _parse_artifacts_config(raw: Dict[str, Any]) -> ArtifactsConfig:
    artifacts = {
        str(key): ArtifactDefinition(
            artifact_id=str(item["id"]),
            name=str(item["name"]),
            category=str(item["category"]),
            description=str(item.get("description", "")),
            owner_role=str(item.get("ownerRole", "")),
            what_good_looks_like=str(item.get("whatGoodLooksLike", "")),
            required_for_tiers=tuple(str(tier) for tier in item.get("requiredForTiers") or []),
        )
        for key, item in raw["artifacts"].items()
    }
    categories = {
        str(name): ArtifactCategory(
            order=int(item.get("order", 999)),
            description=str(item.get("description", "")),
        )
        for name, item in (raw.get("categories") or {}).items()
        if isinstance(item, dict)
    }
    return ArtifactsConfig(artifacts=artifacts, categories=categories)
