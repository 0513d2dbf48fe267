"""Re-tier inventory models when the policy or validation cadence changes."""

from __future__ import annotations

import calendar
from collections import Counter
from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Optional, Sequence, Tuple

import structlog

from governance.objects import UseCaseRecord
from policy.config import EngineConfig
from policy.engine import evaluate_use_case

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class InventoryEntry:
    inventory_number: str
    model_name: str
    tier: str
    validation_frequency_months: int
    added_to_inventory_at: date
    next_validation_due: date
    last_validation_date: Optional[date] = None
    record: Optional[UseCaseRecord] = None


@dataclass(frozen=True)
class AffectedModel:
    inventory_number: str
    model_name: str
    previous_tier: str
    new_tier: str
    tier_changed: bool
    previous_frequency: int
    new_frequency: int
    frequency_changed: bool
    previous_due_date: date
    new_due_date: date
    due_date_changed: bool


@dataclass(frozen=True)
class PreviewSummary:
    total_affected: int
    tier_changes: int
    frequency_changes: int
    earlier_due_dates: int
    later_due_dates: int
    by_tier: Dict[str, int]


def add_months(start: date, months: int) -> date:
    """Shift a date by whole months, clamping to the last day of the month."""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def calculate_new_due_date(
    last_validation_date: Optional[date],
    added_to_inventory_at: date,
    frequency_months: int,
    today: Optional[date] = None,
) -> date:
    """Next validation date; a date already in the past restarts from today."""
    today = today or date.today()
    base = last_validation_date or added_to_inventory_at
    due = add_months(base, frequency_months)
    if due < today:
        return add_months(today, frequency_months)
    return due


def retier_single(entry: InventoryEntry, config: EngineConfig) -> Tuple[str, str, bool]:
    """Re-run the rules engine for one inventory model."""
    if entry.record is None:
        return entry.tier, entry.tier, False
    new_tier = evaluate_use_case(entry.record, config).tier
    return entry.tier, new_tier, new_tier != entry.tier


def preview_retiering(
    entries: Sequence[InventoryEntry],
    validation_frequencies: Dict[str, int],
    config: Optional[EngineConfig] = None,
) -> List[AffectedModel]:
    """List the inventory models whose tier, frequency or due date would change.

    Without ``config`` tiers are kept and only the cadence is re-applied.
    The due date is recomputed from the last validation (or the date the
    model entered inventory) plus the new frequency.
    """
    affected: List[AffectedModel] = []
    for entry in entries:
        new_tier = entry.tier
        if config is not None:
            _, new_tier, _ = retier_single(entry, config)

        new_frequency = validation_frequencies.get(new_tier, entry.validation_frequency_months)
        base = entry.last_validation_date or entry.added_to_inventory_at
        new_due_date = add_months(base, new_frequency)

        tier_changed = new_tier != entry.tier
        frequency_changed = new_frequency != entry.validation_frequency_months
        due_date_changed = new_due_date != entry.next_validation_due
        if not (tier_changed or frequency_changed or due_date_changed):
            continue

        affected.append(
            AffectedModel(
                inventory_number=entry.inventory_number,
                model_name=entry.model_name,
                previous_tier=entry.tier,
                new_tier=new_tier,
                tier_changed=tier_changed,
                previous_frequency=entry.validation_frequency_months,
                new_frequency=new_frequency,
                frequency_changed=frequency_changed,
                previous_due_date=entry.next_validation_due,
                new_due_date=new_due_date,
                due_date_changed=due_date_changed,
            )
        )

    logger.info("retiering_previewed", entries=len(entries), affected=len(affected))
    return affected


def summarize_preview(affected: Sequence[AffectedModel]) -> PreviewSummary:
    """Count affected models and how many change tier or validation frequency."""
    return PreviewSummary(
        total_affected=len(affected),
        tier_changes=sum(1 for model in affected if model.tier_changed),
        frequency_changes=sum(1 for model in affected if model.frequency_changed),
        earlier_due_dates=sum(1 for model in affected if model.new_due_date < model.previous_due_date),
        later_due_dates=sum(1 for model in affected if model.new_due_date > model.previous_due_date),
        by_tier=dict(Counter(model.new_tier for model in affected)),
    )
