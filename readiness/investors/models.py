"""
Investor contact models.

A contact is either a person at a fund ("investor") or the fund itself
("fund"). List fields are stored as JSON text in SQLite.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

LIST_FIELDS = ("stages", "investment_focus", "thesis_keywords", "notable_investments")


class EntityType(str, Enum):
    INVESTOR = "investor"
    FUND = "fund"


class ParsedContact(BaseModel):
    """A contact as parsed from an import file."""

    model_config = ConfigDict(use_enum_values=True)

    name: str = Field(..., description="Person name (or fund name for fund entities)")
    organization_name: str | None = None
    entity_type: EntityType = EntityType.INVESTOR
    city: str | None = None
    country: str | None = None
    city_lat: float | None = None
    city_lng: float | None = None
    email: str | None = None
    linkedin_url: str | None = None
    stages: list[str] = Field(default_factory=list)
    investment_focus: list[str] = Field(default_factory=list)
    ticket_size_min: float | None = None
    ticket_size_max: float | None = None
    fund_size: float | None = None
    thesis_keywords: list[str] = Field(default_factory=list)
    notable_investments: list[str] = Field(default_factory=list)


class ExistingContact(ParsedContact):
    """A stored contact."""

    id: str
    contributor_count: int = 1

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> ExistingContact:
        data = dict(row)
        for name in LIST_FIELDS:
            data[name] = json.loads(data.get(name) or "[]")
        data.pop("created_at", None)
        data.pop("updated_at", None)
        return cls(**data)
