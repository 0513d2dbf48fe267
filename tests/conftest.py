"""Shared fixtures: the shipped configuration and record builders."""

from dataclasses import replace
from pathlib import Path

import pytest

from governance.objects import UseCaseRecord
from policy.loader import load_engine_config


CONFIG_DIR = Path(__file__).resolve().parent.parent / "config"


# Advisory, internal, fully controlled use case: resolves to T1 with no gaps.
BASELINE_RECORD = UseCaseRecord(
    title="Branch staffing forecast",
    business_line="Retail Banking",
    description="Forecasts branch staffing needs for managers",
    ai_type="Rules",
    usage_type="Advisory",
    human_in_loop="Required",
    customer_impact="None",
    regulatory_domains=(),
    deployment="Internal tool",
    vendor_involved=False,
    contains_pii=False,
    contains_npi=False,
    sensitive_attributes_used=False,
    training_data_source="Internal",
    retention_policy_defined=True,
    logging_required=True,
    access_controls_defined=True,
    model_definition_trigger=False,
    explainability_required=True,
    change_frequency="Quarterly",
    retraining=False,
    overrides_allowed=True,
    fallback_plan_defined=True,
    monitoring_cadence="Monthly",
    human_review_process="Manager reviews every forecast",
    incident_response_contact="ops-oncall@example.com",
    status="Submitted",
    has_attachments=True,
    attachment_types=("Business one-pager",),
)


@pytest.fixture(scope="session")
def config_dir() -> Path:
    return CONFIG_DIR


@pytest.fixture(scope="session")
def engine_config():
    """The rules and artifacts configuration shipped in config/."""
    return load_engine_config(CONFIG_DIR)


@pytest.fixture
def make_record():
    """Build a record from the baseline with field overrides."""

    def _make(**overrides) -> UseCaseRecord:
        return replace(BASELINE_RECORD, **overrides)

    return _make


@pytest.fixture
def stored_use_case() -> dict:
    """A use case as persisted, with camelCase keys and JSON-encoded domains."""
    return {
        "id": "uc-001",
        "title": "Small business credit line decisioning",
        "businessLine": "Lending",
        "description": "Scores applications and approves credit lines automatically",
        "aiType": "Traditional ML",
        "usageType": "Decisioning",
        "humanInLoop": "None",
        "customerImpact": "Direct",
        "regulatoryDomains": '["Lending", "ECOA"]',
        "deployment": "Customer-facing",
        "vendorInvolved": True,
        "vendorName": "ScoreCo",
        "containsPii": True,
        "containsNpi": True,
        "sensitiveAttributesUsed": False,
        "trainingDataSource": "Vendor",
        "retentionPolicyDefined": False,
        "loggingRequired": True,
        "accessControlsDefined": True,
        "modelDefinitionTrigger": False,
        "explainabilityRequired": True,
        "changeFrequency": "Monthly",
        "retraining": True,
        "overridesAllowed": False,
        "fallbackPlanDefined": False,
        "monitoringCadence": "None",
        "humanReviewProcess": None,
        "incidentResponseContact": "credit-risk@example.com",
        "status": "Submitted",
        "createdBy": "jordan.lee",
        "createdAt": "2026-03-02T09:30:00Z",
        "updatedAt": "2026-03-05T16:00:00Z",
        "attachments": [
            {"filename": "one-pager.pdf", "type": "Business one-pager"},
        ],
    }
