"""
Module: affinity
Purpose: Score how well a startup fits an investor's stated criteria.

Points:
- stage match: 30
- sector/category overlap: 12 per match, capped at 25
- thesis themes: 7 per match, capped at 20
- ticket size: 15 inside the range, 7 when within 0.5x..1.5x of it
- traction: 5 for revenue, 5 for customers
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any

from readiness.utils.rounding import round_half_up, round_int

STAGE_ALIASES: dict[str, list[str]] = {
    "pre-seed": ["pre-seed", "preseed", "pre seed", "idea", "concept"],
    "seed": ["seed", "angel", "early"],
    "series a": ["series a", "series-a", "a round"],
    "series b": ["series b", "series-b", "b round"],
    "series c+": ["series c", "series-c", "series c+", "growth", "late stage", "expansion"],
}

SECTOR_KEYWORDS: dict[str, list[str]] = {
    "saas": ["saas", "software", "b2b software", "enterprise software", "cloud", "subscription"],
    "fintech": [
        "fintech", "financial technology", "payments", "banking", "insurtech",
        "defi", "crypto", "lending", "neobank",
    ],
    "healthtech": [
        "healthtech", "health tech", "medtech", "digital health", "healthcare",
        "biotech", "clinical", "telemedicine",
    ],
    "ai/ml": [
        "ai", "ml", "artificial intelligence", "machine learning", "deep learning",
        "llm", "generative ai", "nlp", "computer vision",
    ],
    "climate": [
        "climate", "cleantech", "green tech", "sustainability", "renewable",
        "carbon", "energy transition",
    ],
    "consumer": ["consumer", "dtc", "d2c", "b2c", "e-commerce", "retail", "ecommerce"],
    "b2b": ["b2b", "enterprise", "business software", "smb", "sme"],
    "marketplace": ["marketplace", "platform", "two-sided", "network effects"],
    "deeptech": ["deeptech", "deep tech", "hardware", "robotics", "quantum", "space", "semiconductor"],
    "edtech": ["edtech", "education", "learning", "e-learning", "training"],
    "proptech": ["proptech", "real estate", "property", "construction"],
    "legaltech": ["legaltech", "legal tech", "law", "compliance"],
    "foodtech": ["foodtech", "food tech", "agtech", "agriculture"],
    "mobility": ["mobility", "transportation", "logistics", "automotive", "fleet"],
    "hrtech": ["hrtech", "hr tech", "human resources", "recruiting", "talent"],
    "cybersecurity": ["cybersecurity", "security", "infosec", "data protection"],
}

THEME_KEYWORDS: dict[str, list[str]] = {
    "automation": ["automation", "automate", "autonomous"],
    "developer-tools": ["developer tools", "devtools", "api-first", "api first", "sdk"],
    "no-code": ["no-code", "low-code", "no code", "low code"],
    "analytics": ["analytics", "data analytics", "business intelligence", "bi tool"],
    "vertical-saas": ["vertical saas", "vertical software", "industry-specific"],
    "plg": ["product-led", "plg", "self-serve", "freemium", "bottoms-up"],
    "infrastructure": ["infrastructure", "infra", "backend", "middleware"],
    "embedded": ["embedded finance", "embedded", "banking as a service", "baas"],
    "creator": ["creator economy", "creator", "influencer"],
    "remote": ["remote work", "remote-first", "distributed", "hybrid work"],
}


@dataclass
class StartupProfile:
    stage: str | None = None
    category: str | None = None
    sector: list[str] = field(default_factory=list)
    keywords: list[str] = field(default_factory=list)
    funding_ask: float | None = None
    has_revenue: bool = False
    has_customers: bool = False
    current_arr: float | None = None


@dataclass
class InvestorCriteria:
    stages: list[str] = field(default_factory=list)
    investment_focus: list[str] = field(default_factory=list)
    thesis_keywords: list[str] = field(default_factory=list)
    ticket_size_min: float | None = None
    ticket_size_max: float | None = None

    @classmethod
    def from_contact(cls, contact: dict[str, Any]) -> InvestorCriteria:
        """Criteria from a stored investor contact row (lists already decoded)."""
        return cls(
            stages=contact.get("stages") or [],
            investment_focus=contact.get("investment_focus") or [],
            thesis_keywords=contact.get("thesis_keywords") or [],
            ticket_size_min=contact.get("ticket_size_min"),
            ticket_size_max=contact.get("ticket_size_max"),
        )


def normalize_stage(stage: str) -> str:
    lowered = stage.lower().strip()
    for canonical, aliases in STAGE_ALIASES.items():
        if any(alias in lowered for alias in aliases):
            return canonical
    return lowered


def matches_sector(startup_sector: str, investor_focus: list[str]) -> bool:
    sector = startup_sector.lower()
    focus = [f.lower() for f in investor_focus]

    if any(sector in f or f in sector for f in focus):
        return True

    for name, keywords in SECTOR_KEYWORDS.items():
        if any(k in sector for k in keywords):
            if any(name in f or any(k in f for k in keywords) for f in focus):
                return True
    return False


def matches_theme(startup_keywords: list[str], investor_thesis: list[str]) -> list[str]:
    """Startup keywords that hit the thesis directly or via a shared theme; de-duplicated."""
    thesis = [t.lower() for t in investor_thesis]
    matches: list[str] = []

    for keyword in startup_keywords:
        kw = keyword.lower()
        if any(t in kw or kw in t for t in thesis):
            matches.append(keyword)
            continue
        for theme, theme_keywords in THEME_KEYWORDS.items():
            if any(tk in kw for tk in theme_keywords) and any(
                theme in t or any(tk in t for tk in theme_keywords) for t in thesis
            ):
                matches.append(keyword)
                break

    return list(dict.fromkeys(matches))


def format_number(num: float) -> str:
    if num >= 1_000_000:
        return f"{round_half_up(num / 1_000_000, 1):.1f}M"
    if num >= 1_000:
        return f"{round_int(num / 1_000)}K"
    return f"{num:g}"


def match_tier(percentage: int) -> str:
    if percentage >= 60:
        return "strong"
    if percentage >= 40:
        return "good"
    if percentage >= 20:
        return "partial"
    return "low"


def calculate_startup_affinity(
    startup: StartupProfile | None, investor: InvestorCriteria | None
) -> dict[str, Any]:
    """
    Affinity between a startup and one investor.

    Returns:
        {"score", "percentage", "matchSignals": [{type, label, strength}], "tier"}
    """
    if startup is None or investor is None:
        return {"score": 0, "percentage": 0, "matchSignals": [], "tier": "low"}

    signals: list[dict[str, str]] = []
    total = 0.0

    if startup.stage and investor.stages:
        wanted = normalize_stage(startup.stage)
        if any(normalize_stage(s) == wanted for s in investor.stages):
            total += 30
            signals.append({"type": "stage", "label": startup.stage, "strength": "high"})

    sectors = [s for s in [startup.category, *startup.sector] if s]
    if sectors and investor.investment_focus:
        matched = [s for s in sectors if matches_sector(s, investor.investment_focus)]
        if matched:
            total += min(len(matched) * 12, 25)
            signals.append(
                {
                    "type": "sector",
                    "label": ", ".join(matched[:2]),
                    "strength": "high" if len(matched) >= 2 else "medium",
                }
            )

    themes = [*startup.keywords, *sectors]
    if investor.thesis_keywords and themes:
        matched = matches_theme(themes, investor.thesis_keywords)
        if matched:
            total += min(len(matched) * 7, 20)
            signals.append(
                {
                    "type": "theme",
                    "label": ", ".join(matched[:2]),
                    "strength": "high" if len(matched) >= 2 else "medium",
                }
            )

    ask = startup.funding_ask
    if ask and (investor.ticket_size_min or investor.ticket_size_max):
        low = investor.ticket_size_min or 0
        high = investor.ticket_size_max or math.inf
        if low <= ask <= high:
            total += 15
            signals.append({"type": "ticket", "label": f"€{format_number(ask)} ask", "strength": "high"})
        elif low * 0.5 <= ask <= high * 1.5:
            total += 7
            signals.append({"type": "ticket", "label": "Near ticket range", "strength": "medium"})

    if startup.has_revenue or startup.has_customers:
        labels = []
        if startup.has_revenue:
            total += 5
            labels.append(
                f"€{format_number(startup.current_arr)} ARR" if startup.current_arr else "Has revenue"
            )
        if startup.has_customers:
            total += 5
            if not startup.has_revenue:
                labels.append("Has customers")
        signals.append(
            {
                "type": "traction",
                "label": ", ".join(labels),
                "strength": "high" if startup.has_revenue and startup.has_customers else "medium",
            }
        )

    percentage = min(round_int(total), 100)
    return {"score": total, "percentage": percentage, "matchSignals": signals, "tier": match_tier(percentage)}
