"""Generate governance documents from a use case decision."""

from __future__ import annotations

import csv
import io
from collections import defaultdict
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from governance.objects import UseCase
from policy.config import ArtifactDefinition, ArtifactsConfig, EngineConfig, TierDefinition
from policy.engine import DecisionResult

UNKNOWN_CATEGORY_ORDER = 999

INVENTORY_CSV_HEADERS = [
    "ID",
    "Title",
    "Business Line",
    "Model Type",
    "Usage Type",
    "Customer Impact",
    "Human-in-Loop",
    "Deployment",
    "Vendor Involved",
    "Contains PII",
    "Contains NPI",
    "Risk Tier",
    "Model Determination",
    "Risk Flags",
    "Status",
    "Owner",
    "Created Date",
    "Last Updated",
]


def serialize_decision(decision: DecisionResult) -> Dict[str, Any]:
    """Return a JSON-serializable view of a decision."""
    return {
        "isModel": decision.is_model,
        "tier": decision.tier,
        "triggeredRules": [
            {
                "id": rule.rule_id,
                "name": rule.name,
                "tier": rule.tier,
                "triggeredCriteria": rule.triggered_criteria,
            }
            for rule in decision.triggered_rules
        ],
        "rationaleSummary": decision.rationale_summary,
        "requiredArtifacts": list(decision.required_artifacts),
        "missingEvidence": list(decision.missing_evidence),
        "riskFlags": list(decision.risk_flags),
    }


def generate_memo_markdown(
    use_case: UseCase,
    decision: DecisionResult,
    config: EngineConfig,
    generated_at: Optional[datetime] = None,
) -> str:
    """Generate the governance review memo for a decision as Markdown."""
    record = use_case.record
    generated_at = generated_at or datetime.now()
    tier_label = _tier_label(decision.tier, config.rules.tiers)
    artifacts = config.artifacts.artifacts

    lines = ["# Model Use Case Governance Review", "", f"**{_escape_md(record.title)}**", ""]
    lines.extend(
        _format_table(
            [
                ("Use Case ID", use_case.use_case_id),
                ("Business Line", record.business_line),
                ("Owner", use_case.owner or "unknown"),
                ("Date", generated_at.date().isoformat()),
                ("Status", record.status),
                ("Risk Tier", f"{decision.tier} ({tier_label})"),
                ("Model Determination", decision.is_model),
            ]
        )
    )

    lines.extend(["## Executive summary", "", decision.rationale_summary, ""])

    lines.extend(["## Use case overview", ""])
    lines.append(f"- **Description:** {_escape_md(record.description)}")
    lines.append(f"- **Model Type:** {_escape_md(record.ai_type)}")
    lines.append(f"- **Usage Type:** {_escape_md(record.usage_type)}")
    lines.append(f"- **Human-in-the-Loop:** {_escape_md(record.human_in_loop)}")
    lines.append(f"- **Customer Impact:** {_escape_md(record.customer_impact)}")
    lines.append(f"- **Deployment:** {_escape_md(record.deployment)}")
    lines.append("")

    lines.extend(["## Data & privacy", ""])
    lines.append(f"- **Contains PII:** {_yes_no(record.contains_pii)}")
    lines.append(f"- **Contains NPI:** {_yes_no(record.contains_npi)}")
    lines.append(f"- **Sensitive Attributes:** {_yes_no(record.sensitive_attributes_used)}")
    domains = ", ".join(record.regulatory_domains) or "None specified"
    lines.append(f"- **Regulatory Domains:** {domains}")
    lines.append("")

    lines.extend(["## Risk tier decision", "", f"**Assigned Tier: {decision.tier} - {tier_label}**", ""])
    lines.extend(["### Triggered criteria", ""])
    if decision.triggered_rules:
        for rule in decision.triggered_rules:
            lines.append(f"- **{_escape_md(rule.name)}**: {_escape_md(rule.triggered_criteria)}")
    else:
        lines.append("- None")
    lines.append("")

    if decision.risk_flags:
        lines.extend(["### Risk flags", "", ", ".join(decision.risk_flags), ""])

    lines.extend(["## Required artifacts", ""])
    if not decision.required_artifacts:
        lines.append("- None")
    for artifact_id in decision.required_artifacts:
        artifact = artifacts.get(artifact_id)
        if artifact is None:
            lines.append(f"- {artifact_id}")
            continue
        lines.append(
            f"- **{_escape_md(artifact.name)}** ({_escape_md(artifact.category)}) - "
            f"{_escape_md(artifact.description)}"
        )
    lines.append("")

    if decision.missing_evidence:
        lines.extend(["## Missing evidence / open items", ""])
        lines.append("_The following evidence items have not been provided:_")
        lines.append("")
        for artifact_id in decision.missing_evidence:
            artifact = artifacts.get(artifact_id)
            lines.append(f"- [ ] **{_escape_md(artifact.name if artifact else artifact_id)}**")
        lines.append("")

    lines.append("---")
    lines.append(f"Generated by Model Intake & Risk Tiering System, {generated_at.isoformat()}")
    return "\n".join(lines).strip() + "\n"


def generate_checklist_markdown(
    use_case: UseCase,
    decision: DecisionResult,
    config: EngineConfig,
    generated_at: Optional[datetime] = None,
) -> str:
    """Generate the artifact checklist, grouped by category, as Markdown."""
    record = use_case.record
    generated_at = generated_at or datetime.now()
    grouped = _group_by_category(decision.required_artifacts, config.artifacts)
    missing = set(decision.missing_evidence)

    lines = [f"# Artifact Checklist - {_escape_md(record.title)}", ""]
    lines.extend(
        _format_table(
            [
                ("Use Case", record.title),
                ("Business Line", record.business_line),
                ("Risk Tier", f"{decision.tier} - {_tier_label(decision.tier, config.rules.tiers)}"),
                ("Model Determination", decision.is_model),
                ("Generated", generated_at.date().isoformat()),
            ]
        )
    )

    lines.extend([f"## Required artifacts ({len(decision.required_artifacts)})", ""])
    for category, items in grouped:
        lines.extend([f"### {category} ({len(items)})", ""])
        for artifact in items:
            marker = " **MISSING**" if artifact.artifact_id in missing else ""
            lines.append(
                f"- [ ] **{_escape_md(artifact.name)}**{marker} - Owner: {_escape_md(artifact.owner_role) or 'unassigned'}"
            )
            if artifact.description:
                lines.append(f"  {_escape_md(artifact.description)}")
        lines.append("")

    return "\n".join(lines).strip() + "\n"


def generate_inventory_csv(use_case: UseCase, decision: DecisionResult) -> str:
    """Generate a model inventory CSV (header plus one row) for a decision."""
    record = use_case.record
    row = [
        use_case.use_case_id,
        record.title,
        record.business_line,
        record.ai_type,
        record.usage_type,
        record.customer_impact,
        record.human_in_loop,
        record.deployment,
        _yes_no(record.vendor_involved),
        _yes_no(record.contains_pii),
        _yes_no(record.contains_npi),
        decision.tier,
        decision.is_model,
        "; ".join(decision.risk_flags),
        record.status,
        use_case.owner or "",
        use_case.created_at.date().isoformat() if use_case.created_at else "",
        use_case.updated_at.date().isoformat() if use_case.updated_at else "",
    ]
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(INVENTORY_CSV_HEADERS)
    writer.writerow(row)
    return buffer.getvalue()


def _group_by_category(
    artifact_ids: Iterable[str],
    artifacts: ArtifactsConfig,
) -> List[tuple]:
    grouped: Dict[str, List[ArtifactDefinition]] = defaultdict(list)
    for artifact_id in artifact_ids:
        artifact = artifacts.artifacts.get(artifact_id)
        if artifact is not None:
            grouped[artifact.category].append(artifact)

    def order(category: str) -> int:
        definition = artifacts.categories.get(category)
        return definition.order if definition else UNKNOWN_CATEGORY_ORDER

    return [(category, grouped[category]) for category in sorted(grouped, key=order)]


def _tier_label(tier: str, tiers: Dict[str, TierDefinition]) -> str:
    tier_def = tiers.get(tier)
    return tier_def.name if tier_def else tier


def _format_table(rows: Iterable[tuple]) -> List[str]:
    lines = ["| Field | Value |", "| --- | --- |"]
    for label, value in rows:
        lines.append(f"| {_escape_md(label)} | {_escape_md(value)} |")
    lines.append("")
    return lines


def _yes_no(value: bool) -> str:
    return "Yes" if value else "No"


def _escape_md(value: Any) -> str:
    text = str(value) if value is not None else ""
    return text.replace("|", "\\|")
