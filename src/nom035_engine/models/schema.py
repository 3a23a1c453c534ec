"""Pydantic models for catalog reference data.

These mirror the YAML files in ``v1/``:

  - Section: trauma-screening section (I-IV)
  - Category / Domain: psychosocial-risk groupings
  - ConditionalRange: contiguous question ids gated by one attribute
  - RiskBand: closed score range with its advisory description
"""

from typing import Optional

from pydantic import BaseModel, model_validator

from nom035_db.models.enums import RiskLevel


class Section(BaseModel):
    """Trauma-screening section from trauma_screening.yaml."""

    id: str
    title: str
    title_es: str


class Category(BaseModel):
    """Psychosocial-risk category; category scores are summed per id."""

    id: str
    title: str
    title_es: str


class Domain(BaseModel):
    """Psychosocial-risk domain, kept as question metadata."""

    id: str
    title: str
    title_es: str


class ConditionalRange(BaseModel):
    """Question ids ``first..last`` (inclusive) shown only if ``attribute`` is true."""

    attribute: str
    first: int
    last: int
    prompt_es: str = ""

    @model_validator(mode="after")
    def _chk(self):
        if self.first > self.last:
            raise ValueError("first must be <= last")
        return self

    def contains(self, qid: int) -> bool:
        return self.first <= qid <= self.last


class RiskBand(BaseModel):
    """Risk band from risk_levels.yaml.

    ``max`` is None for the open-ended top band.
    """

    id: RiskLevel
    min: int
    max: Optional[int] = None
    title: str
    title_es: str
    requires_action: bool
    description: str

    def contains(self, total: int) -> bool:
        if total < self.min:
            return False
        return self.max is None or total <= self.max
