"""
Investor service: bulk import with deduplication, and startup matching.
"""

from __future__ import annotations

from typing import Any

from readiness.investors.affinity import InvestorCriteria, StartupProfile, calculate_startup_affinity
from readiness.investors.dedup import deduplicate_contacts
from readiness.investors.models import ParsedContact
from readiness.investors.repository import InvestorContactRepository
from readiness.observability.logging import get_logger
from readiness.observability.telemetry import counter, log_event

logger = get_logger(__name__)


def import_contacts(contacts: list[ParsedContact], dry_run: bool = False) -> dict[str, Any]:
    """
    Deduplicate a batch against stored contacts and persist the outcome.

    New and related contacts are inserted, merge candidates update the stored
    record, exact duplicates are skipped. With dry_run nothing is written.
    Contacts within the batch are not compared with each other.

    Returns:
        Deduplication result plus counts of what was written
    """
    existing = InvestorContactRepository.list_all()
    summary = deduplicate_contacts(contacts, existing)

    inserted = merged = 0
    if not dry_run:
        for result in summary.new_contacts + summary.related_contacts:
            InvestorContactRepository.create(result.incoming)
            inserted += 1
        for result in summary.merge_candidates:
            if result.merged_data is not None:
                InvestorContactRepository.apply_merge(result.merged_data)
                merged += 1

    counter("investors.import.inserted", inserted)
    counter("investors.import.merged", merged)
    log_event(
        "investors.import",
        total=summary.total,
        inserted=inserted,
        merged=merged,
        skipped=len(summary.exact_duplicates),
        dry_run=dry_run,
    )

    return {
        **summary.to_dict(),
        "dryRun": dry_run,
        "inserted": inserted,
        "merged": merged,
        "skipped": len(summary.exact_duplicates),
    }


def match_investors(startup: StartupProfile, limit: int = 20, min_percentage: int = 0) -> list[dict[str, Any]]:
    """Stored contacts ranked by affinity with startup, best first."""
    matches = []
    for contact in InvestorContactRepository.list_all():
        affinity = calculate_startup_affinity(startup, InvestorCriteria.from_contact(contact.model_dump()))
        if affinity["percentage"] < min_percentage:
            continue
        matches.append(
            {
                "investor": {
                    "id": contact.id,
                    "name": contact.name,
                    "organizationName": contact.organization_name,
                    "entityType": contact.entity_type,
                    "city": contact.city,
                    "country": contact.country,
                },
                **affinity,
            }
        )

    matches.sort(key=lambda m: m["percentage"], reverse=True)
    logger.debug("Matched startup against %d investors", len(matches))
    return matches[:limit]
