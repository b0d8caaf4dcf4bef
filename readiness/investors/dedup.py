"""
Module: dedup
Purpose: Duplicate detection and merging for bulk investor-contact imports.

Each incoming contact is scored against every stored contact and classified:
- new: no meaningful match, insert
- exact_duplicate: same person at the same organization, skip
- merge_candidate: same person with different or better data, merge
- related: same organization, different person (a team member), insert
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

from readiness.investors.models import ExistingContact, ParsedContact
from readiness.utils.rounding import round_int

# Legal/structural suffixes; must be whole words ("co" does not strip "cortex")
_ORG_SUFFIX = re.compile(
    r"\s+(vc|ventures|capital|partners|fund|gmbh|ltd|inc|llc|lp|llp|ag|sa|bv|co\.?|corp\.?"
    r"|investments?|management|advisors?|group)(?!\w)\s*",
    re.IGNORECASE,
)
_NON_WORD = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")
_EMAIL_DOMAIN = re.compile(r"@([^@]+)$")
_LINKEDIN_SLUG = re.compile(r"linkedin\.com/(?:in|company)/([^/?]+)")

MATCH_NEW = "new"
MATCH_EXACT_DUPLICATE = "exact_duplicate"
MATCH_MERGE_CANDIDATE = "merge_candidate"
MATCH_RELATED = "related"

PREFER_NON_NULL = ("organization_name", "name", "city", "country", "city_lat", "city_lng", "linkedin_url", "email")
PREFER_EXISTING = ("entity_type",)
PREFER_LARGER = ("fund_size", "ticket_size_min", "ticket_size_max")
MERGE_ARRAYS = ("stages", "investment_focus", "thesis_keywords", "notable_investments")


# ============================================================================
# NORMALIZATION
# ============================================================================


def normalize_org_name(name: str | None) -> str:
    if not name:
        return ""
    # Suffix matching needs a leading space, so "Acme Capital" loses "capital"
    # but a bare "Capital" is kept.
    value = _ORG_SUFFIX.sub(" ", name.lower())
    value = _NON_WORD.sub("", value)
    return _WHITESPACE.sub(" ", value).strip()


def normalize_name(name: str | None) -> str:
    if not name:
        return ""
    return _WHITESPACE.sub(" ", _NON_WORD.sub("", name.lower())).strip()


def extract_email_domain(email: str | None) -> str | None:
    if not email:
        return None
    match = _EMAIL_DOMAIN.search(email.lower())
    return match.group(1) if match else None


def normalize_linkedin(url: str | None) -> str | None:
    """Profile or company slug from any linkedin.com/in/... or /company/... URL."""
    if not url:
        return None
    match = _LINKEDIN_SLUG.search(url.lower())
    return match.group(1).rstrip("/") if match else None


# ============================================================================
# MATCHING
# ============================================================================


def levenshtein_distance(a: str, b: str) -> int:
    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            if char_a == char_b:
                current.append(previous[j - 1])
            else:
                current.append(min(previous[j - 1], current[j - 1], previous[j]) + 1)
        previous = current
    return previous[-1]


def string_similarity(a: str, b: str) -> int:
    """0..100; empty strings never match."""
    if not a or not b:
        return 0
    if a == b:
        return 100
    max_len = max(len(a), len(b))
    return round_int((1 - levenshtein_distance(a, b) / max_len) * 100)


@dataclass
class MatchResult:
    incoming: ParsedContact
    match_type: str
    existing_match: ExistingContact | None
    confidence: int
    match_reasons: list[str] = field(default_factory=list)
    merged_data: ExistingContact | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "incoming": self.incoming.model_dump(),
            "matchType": self.match_type,
            "existingMatch": self.existing_match.model_dump() if self.existing_match else None,
            "confidence": self.confidence,
            "matchReasons": self.match_reasons,
            "mergedData": self.merged_data.model_dump() if self.merged_data else None,
        }


def _score_pair(incoming: ParsedContact, existing: ExistingContact) -> tuple[int, list[str]]:
    incoming_org = normalize_org_name(incoming.organization_name)
    existing_org = normalize_org_name(existing.organization_name)
    incoming_domain = extract_email_domain(incoming.email)
    incoming_linkedin = normalize_linkedin(incoming.linkedin_url)

    score = 0
    reasons: list[str] = []

    existing_linkedin = normalize_linkedin(existing.linkedin_url)
    if incoming_linkedin and existing_linkedin and incoming_linkedin == existing_linkedin:
        score = 100
        reasons.append("Exact LinkedIn match")

    if incoming.email and existing.email and incoming.email.lower() == existing.email.lower():
        score = max(score, 95)
        reasons.append("Exact email match")

    existing_domain = extract_email_domain(existing.email)
    if incoming_domain and existing_domain and incoming_domain == existing_domain:
        org_similarity = string_similarity(incoming_org, existing_org)
        if org_similarity > 70:
            score = max(score, 80 + org_similarity // 10)
            reasons.append(f"Same email domain ({incoming_domain}), similar org name")

    if incoming_org and existing_org:
        org_similarity = string_similarity(incoming_org, existing_org)
        if org_similarity == 100:
            name_similarity = string_similarity(normalize_name(incoming.name), normalize_name(existing.name))
            if name_similarity > 85:
                score = max(score, 95)
                reasons.append("Same organization, same person")
            elif name_similarity > 50:
                score = max(score, 75)
                reasons.append("Same organization, similar name")
            else:
                score = max(score, 60)
                reasons.append("Same organization, different person")
        elif org_similarity > 85:
            score = max(score, 70)
            reasons.append(f"Similar organization name ({org_similarity}% match)")
        elif org_similarity > 70:
            score = max(score, 50)
            reasons.append(f"Possible organization match ({org_similarity}%)")

    return score, reasons


def _classify(incoming: ParsedContact, best: ExistingContact | None, score: int) -> str:
    if best is None:
        return MATCH_NEW
    if score >= 90:
        name_similarity = string_similarity(normalize_name(incoming.name), normalize_name(best.name))
        if name_similarity > 85:
            return MATCH_EXACT_DUPLICATE
        if name_similarity > 50:
            return MATCH_MERGE_CANDIDATE
        return MATCH_RELATED
    if score >= 70:
        return MATCH_MERGE_CANDIDATE
    if score >= 50:
        org_similarity = string_similarity(
            normalize_org_name(incoming.organization_name), normalize_org_name(best.organization_name)
        )
        return MATCH_RELATED if org_similarity > 85 else MATCH_NEW
    return MATCH_NEW


def find_best_match(incoming: ParsedContact, existing_contacts: list[ExistingContact]) -> MatchResult:
    """Highest-scoring stored contact for incoming; the first one wins ties."""
    best: ExistingContact | None = None
    best_score = 0
    best_reasons: list[str] = []

    for existing in existing_contacts:
        score, reasons = _score_pair(incoming, existing)
        if score > best_score:
            best, best_score, best_reasons = existing, score, reasons

    match_type = _classify(incoming, best, best_score)
    merged = merge_contacts(best, incoming) if match_type == MATCH_MERGE_CANDIDATE and best else None
    return MatchResult(
        incoming=incoming,
        match_type=match_type,
        existing_match=best,
        confidence=best_score,
        match_reasons=best_reasons,
        merged_data=merged,
    )


# ============================================================================
# MERGING
# ============================================================================


def merge_arrays(existing: list[str] | None, incoming: list[str] | None) -> list[str]:
    """Concatenate, trim and de-duplicate case-insensitively; first spelling wins."""
    seen: set[str] = set()
    result = []
    for item in [*(existing or []), *(incoming or [])]:
        trimmed = item.strip()
        key = trimmed.lower()
        if trimmed and key not in seen:
            seen.add(key)
            result.append(trimmed)
    return result


def merge_contacts(existing: ExistingContact, incoming: ParsedContact) -> ExistingContact:
    updates: dict[str, Any] = {}

    for name in PREFER_NON_NULL:
        value = getattr(incoming, name)
        if value is not None and value != "":
            updates[name] = value

    for name in PREFER_LARGER:
        current, new = getattr(existing, name), getattr(incoming, name)
        if current is not None and new is not None:
            updates[name] = max(current, new)
        elif current is None and new is not None:
            updates[name] = new

    for name in MERGE_ARRAYS:
        updates[name] = merge_arrays(getattr(existing, name), getattr(incoming, name))

    # PREFER_EXISTING fields are left as stored
    return existing.model_copy(update=updates)


# ============================================================================
# BATCH
# ============================================================================


@dataclass
class DeduplicationSummary:
    new_contacts: list[MatchResult] = field(default_factory=list)
    merge_candidates: list[MatchResult] = field(default_factory=list)
    exact_duplicates: list[MatchResult] = field(default_factory=list)
    related_contacts: list[MatchResult] = field(default_factory=list)
    total: int = 0

    def describe(self) -> str:
        """e.g. "3 new, 1 to merge, 2 team members"."""
        parts = []
        if self.new_contacts:
            parts.append(f"{len(self.new_contacts)} new")
        if self.merge_candidates:
            parts.append(f"{len(self.merge_candidates)} to merge")
        if self.exact_duplicates:
            parts.append(f"{len(self.exact_duplicates)} duplicates")
        if self.related_contacts:
            parts.append(f"{len(self.related_contacts)} team members")
        return ", ".join(parts)

    def to_dict(self) -> dict[str, Any]:
        return {
            "newContacts": [r.to_dict() for r in self.new_contacts],
            "mergeCandidates": [r.to_dict() for r in self.merge_candidates],
            "exactDuplicates": [r.to_dict() for r in self.exact_duplicates],
            "relatedContacts": [r.to_dict() for r in self.related_contacts],
            "total": self.total,
            "summary": self.describe(),
        }


def deduplicate_contacts(
    incoming_contacts: list[ParsedContact], existing_contacts: list[ExistingContact]
) -> DeduplicationSummary:
    summary = DeduplicationSummary(total=len(incoming_contacts))
    buckets = {
        MATCH_NEW: summary.new_contacts,
        MATCH_MERGE_CANDIDATE: summary.merge_candidates,
        MATCH_EXACT_DUPLICATE: summary.exact_duplicates,
        MATCH_RELATED: summary.related_contacts,
    }
    for incoming in incoming_contacts:
        result = find_best_match(incoming, existing_contacts)
        buckets[result.match_type].append(result)
    return summary
