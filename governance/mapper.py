"""Map stored use cases and intake forms into evaluation records."""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple

from governance.errors import RecordError
from governance.objects import Attachment, UseCase, UseCaseRecord


def flatten_use_case(
    raw: Mapping[str, Any],
    attachments: Optional[Sequence[Attachment]] = None,
) -> UseCaseRecord:
    """Project a stored use case (camelCase keys) into a UseCaseRecord."""
    if not isinstance(raw, Mapping):
        raise RecordError("Use case must be a mapping.")
    if attachments is None:
        attachments = _parse_attachments(raw.get("attachments"))

    return UseCaseRecord(
        title=_text(raw.get("title")),
        business_line=_text(raw.get("businessLine")),
        description=_text(raw.get("description")),
        ai_type=_text(raw.get("aiType")),
        usage_type=_text(raw.get("usageType")),
        human_in_loop=_text(raw.get("humanInLoop")),
        customer_impact=_text(raw.get("customerImpact")),
        regulatory_domains=_parse_domains(raw.get("regulatoryDomains")),
        deployment=_text(raw.get("deployment")),
        vendor_involved=_flag(raw.get("vendorInvolved")),
        vendor_name=raw.get("vendorName"),
        intended_users=raw.get("intendedUsers"),
        downstream_decisions=raw.get("downstreamDecisions"),
        contains_pii=_flag(raw.get("containsPii")),
        contains_npi=_flag(raw.get("containsNpi")),
        sensitive_attributes_used=_flag(raw.get("sensitiveAttributesUsed")),
        training_data_source=raw.get("trainingDataSource"),
        retention_policy_defined=_flag(raw.get("retentionPolicyDefined")),
        logging_required=_flag(raw.get("loggingRequired")),
        access_controls_defined=_flag(raw.get("accessControlsDefined")),
        model_definition_trigger=_flag(raw.get("modelDefinitionTrigger")),
        explainability_required=_flag(raw.get("explainabilityRequired")),
        change_frequency=raw.get("changeFrequency"),
        retraining=_flag(raw.get("retraining")),
        overrides_allowed=_flag(raw.get("overridesAllowed")),
        fallback_plan_defined=_flag(raw.get("fallbackPlanDefined")),
        monitoring_cadence=raw.get("monitoringCadence"),
        human_review_process=raw.get("humanReviewProcess"),
        incident_response_contact=raw.get("incidentResponseContact"),
        status=_text(raw.get("status")) or "Draft",
        has_attachments=len(attachments) > 0,
        attachment_types=tuple(attachment.type for attachment in attachments),
    )


def map_use_case(raw: Mapping[str, Any]) -> UseCase:
    """Build a UseCase (identity, owner, timestamps) around its flattened record."""
    if not isinstance(raw, Mapping):
        raise RecordError("Use case must be a mapping.")
    return UseCase(
        use_case_id=_text(raw.get("id")) or "unknown",
        owner=raw.get("createdBy"),
        created_at=_parse_timestamp(raw.get("createdAt"), "createdAt"),
        updated_at=_parse_timestamp(raw.get("updatedAt"), "updatedAt"),
        record=flatten_use_case(raw),
    )


def flatten_intake_form(form: Mapping[str, Any]) -> UseCaseRecord:
    """Map an unsubmitted intake form, filling the defaults the form UI implies."""
    if not isinstance(form, Mapping):
        raise RecordError("Intake form must be a mapping.")
    return UseCaseRecord(
        title=_text(form.get("title")),
        business_line=_text(form.get("businessLine")),
        description=_text(form.get("description")),
        ai_type=_text(form.get("modelType")),
        usage_type=_text(form.get("usageType")),
        human_in_loop=_text(form.get("humanInLoop")),
        customer_impact=_text(form.get("customerImpact")),
        regulatory_domains=_parse_domains(form.get("regulatoryDomains")),
        deployment=_text(form.get("deployment")),
        vendor_involved=_flag(form.get("vendorInvolved")),
        vendor_name=form.get("vendorName") or "",
        intended_users=form.get("intendedUsers") or "",
        downstream_decisions=form.get("downstreamDecisions") or "",
        contains_pii=_flag(form.get("containsPii")),
        contains_npi=_flag(form.get("containsNpi")),
        sensitive_attributes_used=_flag(form.get("sensitiveAttributesUsed")),
        training_data_source=form.get("trainingDataSource") or "Internal",
        retention_policy_defined=_flag(form.get("retentionPolicyDefined")),
        logging_required=_flag(form.get("loggingRequired")),
        access_controls_defined=_flag(form.get("accessControlsDefined")),
        model_definition_trigger=_flag(form.get("modelDefinitionTrigger")),
        explainability_required=_flag(form.get("explainabilityRequired")),
        change_frequency=form.get("changeFrequency") or "Quarterly",
        retraining=_flag(form.get("retraining")),
        overrides_allowed=_flag(form.get("overridesAllowed")),
        fallback_plan_defined=_flag(form.get("fallbackPlanDefined")),
        monitoring_cadence=form.get("monitoringCadence") or "Monthly",
        human_review_process=form.get("humanReviewProcess") or "",
        incident_response_contact=form.get("incidentResponseContact") or "",
        status="Draft",
        has_attachments=False,
        attachment_types=(),
    )


def _parse_attachments(raw: Any) -> List[Attachment]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise RecordError("Attachments must be a list.")
    attachments: List[Attachment] = []
    for item in raw:
        if not isinstance(item, Mapping):
            raise RecordError("Each attachment must be a mapping.")
        attachments.append(
            Attachment(
                filename=_text(item.get("filename")),
                type=_text(item.get("type")) or "Other",
            )
        )
    return attachments


def _parse_domains(raw: Any) -> Tuple[str, ...]:
    # Stored records keep the domain list as a JSON string.
    if raw is None:
        return ()
    if isinstance(raw, str):
        try:
            raw = json.loads(raw or "[]")
        except json.JSONDecodeError:
            return ()
    if not isinstance(raw, (list, tuple)):
        return ()
    return tuple(str(domain) for domain in _non_empty(raw))


def _non_empty(values: Iterable[Any]) -> List[Any]:
    return [value for value in values if value is not None and value != ""]


def _parse_timestamp(raw: Any, field_name: str) -> Optional[datetime]:
    if raw is None or isinstance(raw, datetime):
        return raw
    try:
        return datetime.fromisoformat(str(raw).replace("Z", "+00:00"))
    except ValueError as exc:
        raise RecordError(
            f"Field '{field_name}' is not an ISO timestamp.",
            details={"field": field_name, "value": str(raw)},
        ) from exc


def _text(value: Any) -> str:
    return str(value) if value is not None else ""


def _flag(value: Any) -> bool:
    return value is True

