from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class Attachment:
    filename: str
    type: str


@dataclass(frozen=True)
class UseCaseRecord:
    """Flattened snapshot of a use case, as seen by the rules engine."""

    title: str = ""
    business_line: str = ""
    description: str = ""
    ai_type: str = ""
    usage_type: str = ""
    human_in_loop: str = ""
    customer_impact: str = ""
    regulatory_domains: Tuple[str, ...] = ()
    deployment: str = ""
    vendor_involved: bool = False
    vendor_name: Optional[str] = None
    intended_users: Optional[str] = None
    downstream_decisions: Optional[str] = None
    contains_pii: bool = False
    contains_npi: bool = False
    sensitive_attributes_used: bool = False
    training_data_source: Optional[str] = None
    retention_policy_defined: bool = False
    logging_required: bool = False
    access_controls_defined: bool = False
    model_definition_trigger: bool = False
    explainability_required: bool = False
    change_frequency: Optional[str] = None
    retraining: bool = False
    overrides_allowed: bool = False
    fallback_plan_defined: bool = False
    monitoring_cadence: Optional[str] = None
    human_review_process: Optional[str] = None
    incident_response_contact: Optional[str] = None
    status: str = "Draft"
    has_attachments: bool = False
    attachment_types: Tuple[str, ...] = ()

    def get(self, field_name: str) -> Any:
        """Read an attribute by its configuration name (e.g. ``usageType``)."""
        attribute = RECORD_FIELDS.get(field_name)
        if attribute is None:
            return None
        return getattr(self, attribute)


# Configuration field name -> UseCaseRecord attribute.
RECORD_FIELDS: Dict[str, str] = {
    "title": "title",
    "businessLine": "business_line",
    "description": "description",
    "aiType": "ai_type",
    "usageType": "usage_type",
    "humanInLoop": "human_in_loop",
    "customerImpact": "customer_impact",
    "regulatoryDomains": "regulatory_domains",
    "deployment": "deployment",
    "vendorInvolved": "vendor_involved",
    "vendorName": "vendor_name",
    "intendedUsers": "intended_users",
    "downstreamDecisions": "downstream_decisions",
    "containsPii": "contains_pii",
    "containsNpi": "contains_npi",
    "sensitiveAttributesUsed": "sensitive_attributes_used",
    "trainingDataSource": "training_data_source",
    "retentionPolicyDefined": "retention_policy_defined",
    "loggingRequired": "logging_required",
    "accessControlsDefined": "access_controls_defined",
    "modelDefinitionTrigger": "model_definition_trigger",
    "explainabilityRequired": "explainability_required",
    "changeFrequency": "change_frequency",
    "retraining": "retraining",
    "overridesAllowed": "overrides_allowed",
    "fallbackPlanDefined": "fallback_plan_defined",
    "monitoringCadence": "monitoring_cadence",
    "humanReviewProcess": "human_review_process",
    "incidentResponseContact": "incident_response_contact",
    "status": "status",
    "hasAttachments": "has_attachments",
    "attachmentTypes": "attachment_types",
}


@dataclass(frozen=True)
class UseCase:
    use_case_id: str
    owner: Optional[str]
    created_at: Optional[datetime]
    updated_at: Optional[datetime]
    record: UseCaseRecord
