"""Tests for configuration loading, validation and caching."""

import shutil
import textwrap

import pytest

from governance.errors import ConfigError, ConfigValidationError
from policy.conditions import AllOf, Leaf
from policy.config import DEFAULT_VALIDATION_FREQUENCIES
from policy.loader import (
    ARTIFACTS_FILE,
    RULES_FILE,
    ConfigCache,
    check_config_dir,
    load_artifacts_config_from_yaml,
    load_engine_config,
    load_proposed_rules_config,
    load_rules_config_from_file,
    load_rules_config_from_yaml,
)
from policy.validation import validate_artifacts_config, validate_rules_config


MINIMAL_RULES = textwrap.dedent(
    """
    tiers:
      T1: {name: Low Risk, description: Low, severity: 1}
      T2: {name: Medium Risk, description: Medium, severity: 2}
    defaultTier: T1
    rules:
      - id: R_PII
        name: PII Processing
        tier: T2
        conditions:
          field: containsPii
          operator: eq
          value: true
        effects:
          addRequiredArtifacts: [Summary]
          addRiskFlags: [Personal data processing]
          triggeredCriteria: Processes PII
    """
)

MINIMAL_ARTIFACTS = textwrap.dedent(
    """
    categories:
      Governance: {order: 1}
    artifacts:
      Summary:
        id: Summary
        name: Use Case Summary
        category: Governance
        requiredForTiers: [T1, T2]
    """
)


@pytest.fixture
def config_copy(tmp_path, config_dir):
    """A writable copy of the shipped configuration."""
    target = tmp_path / "config"
    shutil.copytree(config_dir, target)
    return target


def _valid_rules(**overrides):
    raw = {
        "tiers": {"T1": {"name": "Low", "severity": 1}, "T2": {"name": "Medium", "severity": 2}},
        "defaultTier": "T1",
        "rules": [
            {
                "id": "R1",
                "tier": "T2",
                "conditions": {"field": "usageType", "operator": "eq", "value": "Decisioning"},
                "effects": {"addRequiredArtifacts": [], "addRiskFlags": []},
            }
        ],
    }
    raw.update(overrides)
    return raw


class TestShippedConfig:

    def test_loads(self, engine_config):
        assert list(engine_config.rules.tiers) == ["T1", "T2", "T3"]
        assert engine_config.rules.default_tier == "T1"
        assert engine_config.rules.rules[0].rule_id == "R_AUTOMATED_CUSTOMER_DECISION"
        assert len(engine_config.rules.rules) == 12
        assert len(engine_config.rules.model_definition_criteria) == 5
        assert engine_config.rules.validation_frequencies == {"T3": 12, "T2": 24, "T1": 36}

    def test_yes_result_stays_a_string(self, engine_config):
        results = [c.result for c in engine_config.rules.model_definition_criteria]
        assert results[0] == "Yes"

    def test_human_in_loop_none_stays_a_string(self, engine_config):
        rule = engine_config.rules.rules[0]
        assert Leaf("humanInLoop", "eq", "None") in rule.conditions.children

    def test_artifacts_keep_file_order(self, engine_config):
        ids = list(engine_config.artifacts.artifacts)
        assert ids[0] == "UseCaseSummary"
        assert ids[-1] == "VendorDueDiligence"
        assert engine_config.artifacts.categories["Third Party"].order == 6

    def test_check_config_dir_reports_nothing(self, config_dir):
        assert check_config_dir(config_dir) == []


class TestLoadFromYaml:

    def test_minimal_rules(self):
        config = load_rules_config_from_yaml(MINIMAL_RULES)
        rule = config.rules[0]

        assert rule.conditions == Leaf("containsPii", "eq", True)
        assert rule.effects.add_required_artifacts == ("Summary",)
        assert rule.effects.triggered_criteria == "Processes PII"
        assert config.model_definition_criteria == ()
        assert config.validation_frequencies == DEFAULT_VALIDATION_FREQUENCIES

    def test_list_conditions_parse_as_all(self):
        content = MINIMAL_RULES.replace(
            "      field: containsPii\n      operator: eq\n      value: true\n",
            "      - field: containsPii\n        operator: eq\n        value: true\n",
        )
        config = load_rules_config_from_yaml(content)
        assert config.rules[0].conditions == AllOf(children=(Leaf("containsPii", "eq", True),))

    def test_partial_frequencies_merge_with_defaults(self):
        config = load_rules_config_from_yaml(MINIMAL_RULES + "validationFrequencies:\n  T2: 18\n")
        assert config.validation_frequencies == {"T3": 12, "T2": 18, "T1": 36}

    def test_minimal_artifacts(self):
        config = load_artifacts_config_from_yaml(MINIMAL_ARTIFACTS)
        summary = config.artifacts["Summary"]
        assert summary.required_for_tiers == ("T1", "T2")
        assert summary.owner_role == ""

    def test_invalid_yaml(self):
        with pytest.raises(ConfigError, match="Invalid YAML in rules.yaml"):
            load_rules_config_from_yaml("tiers: [unclosed", source="rules.yaml")

    def test_non_mapping_document(self):
        with pytest.raises(ConfigError, match="must be a YAML mapping"):
            load_rules_config_from_yaml("- just\n- a list\n")

    def test_validation_errors_are_collected(self):
        content = MINIMAL_RULES.replace("tier: T2", "tier: T7").replace("containsPii", "piiFlag")
        with pytest.raises(ConfigValidationError) as excinfo:
            load_rules_config_from_yaml(content, source="rules.yaml")

        assert excinfo.value.errors == [
            'Rule "R_PII" has invalid tier "T7"',
            'Rule "R_PII" references unknown field "piiFlag"',
        ]
        assert excinfo.value.code == "CONFIG_VALIDATION_ERROR"
        assert "rules.yaml" in excinfo.value.message

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="Unable to read configuration file"):
            load_rules_config_from_file(tmp_path / "absent.yaml")


class TestValidateRulesConfig:

    def test_valid(self):
        assert validate_rules_config(_valid_rules()) == []

    def test_not_a_mapping(self):
        assert validate_rules_config(["x"]) == ["Rules configuration must be a mapping."]

    def test_no_tiers(self):
        errors = validate_rules_config(_valid_rules(tiers={}))
        assert "No tiers defined in configuration" in errors
        assert 'Default tier "T1" not found in tier definitions' in errors

    def test_tier_fields(self):
        errors = validate_rules_config(
            _valid_rules(tiers={"T1": {"severity": "high"}, "T2": {"name": "M", "severity": 2}})
        )
        assert 'Tier "T1" missing name' in errors
        assert 'Tier "T1" severity must be an integer' in errors

    def test_rule_ids(self):
        rule = _valid_rules()["rules"][0]
        errors = validate_rules_config(_valid_rules(rules=[rule, dict(rule), {**rule, "id": None}]))
        assert 'Duplicate rule id "R1"' in errors
        assert "Rule at index 2 missing id" in errors

    def test_rule_missing_conditions_and_effects(self):
        errors = validate_rules_config(_valid_rules(rules=[{"id": "R1", "tier": "T1"}]))
        assert errors == ['Rule "R1" missing conditions', 'Rule "R1" missing effects']

    def test_condition_leaves(self):
        conditions = {
            "any": [
                {"operator": "eq", "value": 1},
                {"field": "usageType", "operator": "like", "value": "x"},
                {"field": "usageType", "operator": "in", "value": "Decisioning"},
            ]
        }
        rule = {**_valid_rules()["rules"][0], "conditions": conditions}
        errors = validate_rules_config(_valid_rules(rules=[rule]))

        assert errors == [
            'Rule "R1" has a condition missing field',
            'Rule "R1" uses unknown operator "like"',
            'Rule "R1" operator "in" on "usageType" requires a list value',
        ]

    def test_combinator_must_be_a_list(self):
        rule = {**_valid_rules()["rules"][0], "conditions": {"all": {"field": "usageType"}}}
        errors = validate_rules_config(_valid_rules(rules=[rule]))
        assert errors == ['Rule "R1" "all" must be a list of conditions']

    def test_effects_shapes(self):
        rule = {
            **_valid_rules()["rules"][0],
            "effects": {"addRequiredArtifacts": "ModelCard", "triggeredCriteria": 5},
        }
        errors = validate_rules_config(_valid_rules(rules=[rule]))
        assert 'Rule "R1" effects.addRequiredArtifacts must be a list' in errors
        assert 'Rule "R1" effects.triggeredCriteria must be text' in errors

    def test_model_definition_criteria(self):
        criteria = [
            {"result": "Maybe", "conditions": {"field": "aiType", "operator": "eq", "value": "GenAI"}},
        ]
        errors = validate_rules_config(_valid_rules(modelDefinitionCriteria=criteria))
        assert "Model definition criterion at index 0 missing id" in errors
        assert (
            'Model definition criterion "0" has invalid result "Maybe" '
            "(expected one of Yes, No, Model-like)"
        ) in errors

    def test_yaml_boolean_result_is_rejected(self):
        # An unquoted Yes in YAML 1.1 loads as True.
        criteria = [{"id": "MD1", "result": True, "conditions": []}]
        errors = validate_rules_config(_valid_rules(modelDefinitionCriteria=criteria))
        assert errors == [
            'Model definition criterion "MD1" has invalid result "True" '
            "(expected one of Yes, No, Model-like)"
        ]

    def test_validation_frequencies(self):
        errors = validate_rules_config(_valid_rules(validationFrequencies={"T1": 0, "T9": 12}))
        assert errors == [
            'validationFrequencies for "T1" must be a positive integer',
            'validationFrequencies references unknown tier "T9"',
        ]

    def test_list_values_are_reported_not_raised(self):
        rule = {
            "id": ["R1"],
            "tier": ["T1"],
            "conditions": {"field": ["usageType"], "operator": ["eq"], "value": "Decisioning"},
            "effects": {},
        }
        errors = validate_rules_config(_valid_rules(defaultTier=["T1"], rules=[rule]))

        assert errors == [
            "Default tier \"['T1']\" not found in tier definitions",
            "Rule at index 0 has invalid id \"['R1']\"",
            "Rule \"['R1']\" has invalid tier \"['T1']\"",
            "Rule \"['R1']\" references unknown field \"['usageType']\"",
            "Rule \"['R1']\" uses unknown operator \"['eq']\"",
        ]

    @pytest.mark.parametrize(
        "old,new",
        [
            ("defaultTier: T1", "defaultTier: [T1]"),
            ("tier: T2", "tier: [T2]"),
            ("field: containsPii", "field: [containsPii]"),
        ],
    )
    def test_list_values_in_yaml_raise_validation_error(self, old, new):
        with pytest.raises(ConfigValidationError) as excinfo:
            load_rules_config_from_yaml(MINIMAL_RULES.replace(old, new))
        assert len(excinfo.value.errors) == 1


class TestValidateArtifactsConfig:

    def test_no_artifacts(self):
        assert validate_artifacts_config({"artifacts": {}}) == ["No artifacts defined in configuration"]

    def test_list_id_is_reported_not_raised(self):
        errors = validate_artifacts_config(
            {"artifacts": {"A": {"id": ["A"], "name": "A", "category": "Governance"}}}
        )
        assert errors == ["Artifact \"A\" has invalid id \"['A']\""]

    def test_artifact_fields(self):
        errors = validate_artifacts_config(
            {
                "artifacts": {
                    "ModelCard": {"id": "ModelCard"},
                    "Plan": {"id": "ValidationPlan", "name": "Plan", "category": "Model Risk"},
                    "Matrix": {"name": "Matrix", "category": "Data", "requiredForTiers": "T3"},
                }
            }
        )
        assert errors == [
            'Artifact "ModelCard" missing name',
            'Artifact "ModelCard" missing category',
            'Artifact "Plan" has mismatched id "ValidationPlan"',
            'Artifact "Matrix" missing id',
            'Artifact "Matrix" requiredForTiers must be a list',
        ]

    def test_category_order(self):
        errors = validate_artifacts_config(
            {
                "categories": {"Governance": {"order": "first"}},
                "artifacts": {"A": {"id": "A", "name": "A", "category": "Governance"}},
            }
        )
        assert errors == ['Category "Governance" order must be an integer']


class TestLoadEngineConfig:

    def test_unknown_artifact_reference(self, tmp_path):
        (tmp_path / RULES_FILE).write_text(MINIMAL_RULES.replace("[Summary]", "[Missing]"))
        (tmp_path / ARTIFACTS_FILE).write_text(MINIMAL_ARTIFACTS)

        with pytest.raises(ConfigValidationError) as excinfo:
            load_engine_config(tmp_path)
        assert excinfo.value.errors == ['Rule "R_PII" requires unknown artifact "Missing"']

    def test_artifact_for_unknown_tier(self, tmp_path):
        (tmp_path / RULES_FILE).write_text(MINIMAL_RULES)
        (tmp_path / ARTIFACTS_FILE).write_text(MINIMAL_ARTIFACTS.replace("[T1, T2]", "[T1, T4]"))

        assert check_config_dir(tmp_path) == ['Artifact "Summary" is required for unknown tier "T4"']

    def test_proposed_rules_checked_against_active_artifacts(self, tmp_path):
        artifacts = load_artifacts_config_from_yaml(MINIMAL_ARTIFACTS)
        path = tmp_path / RULES_FILE
        path.write_text(MINIMAL_RULES)
        assert load_proposed_rules_config(path, artifacts).rules[0].rule_id == "R_PII"

        path.write_text(MINIMAL_RULES.replace("[Summary]", "[Questionnaire]"))
        with pytest.raises(ConfigValidationError) as excinfo:
            load_proposed_rules_config(path, artifacts)
        assert excinfo.value.errors == ['Rule "R_PII" requires unknown artifact "Questionnaire"']

    def test_check_config_dir_reports_read_failures(self, tmp_path):
        errors = check_config_dir(tmp_path)
        assert len(errors) == 1
        assert errors[0].startswith("Unable to read configuration file")


class TestConfigCache:

    def test_get_loads_once(self, config_copy):
        cache = ConfigCache(config_copy)
        assert cache.get() is cache.get()

    def test_reload_picks_up_changes(self, config_copy):
        cache = ConfigCache(config_copy)
        first = cache.get()
        rules_path = config_copy / RULES_FILE
        rules_path.write_text(rules_path.read_text().replace("  T3: 12\n", "  T3: 6\n", 1))

        reloaded = cache.reload()

        assert reloaded is not first
        assert cache.get() is reloaded
        assert reloaded.rules.validation_frequencies["T3"] == 6

    def test_failed_reload_keeps_previous_config(self, config_copy):
        cache = ConfigCache(config_copy)
        first = cache.get()
        (config_copy / RULES_FILE).write_text("tiers: {}\n")

        with pytest.raises(ConfigValidationError):
            cache.reload()
        assert cache.get() is first

    def test_clear_forces_a_fresh_load(self, config_copy):
        cache = ConfigCache(config_copy)
        first = cache.get()
        cache.clear()
        assert cache.get() is not first
