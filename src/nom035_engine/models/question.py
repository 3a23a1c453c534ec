"""Question models for the two NOM-035 questionnaires.

  - TraumaQuestion: yes/no question belonging to a section (I-IV)
  - LikertQuestion: 5-point ordinal question with category, domain, and
    an inversion flag selecting which value table scores it

The ``Question`` union uses ``answer_kind`` as its discriminator.
"""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field


class BaseQuestion(BaseModel):
    """Fields shared by both question kinds."""

    id: int = Field(gt=0)
    text: str


class TraumaQuestion(BaseQuestion):
    """Reference Guide I question; answered true/false."""

    answer_kind: Literal["boolean"] = "boolean"
    section: str


class LikertQuestion(BaseQuestion):
    """Reference Guide III question; answered with an index 0..4."""

    answer_kind: Literal["likert"] = "likert"
    category: str
    domain: str
    dimension: str
    # Positively worded questions are scored with the inverted table
    inverted: bool = False


Question = Annotated[
    Union[TraumaQuestion, LikertQuestion],
    Field(discriminator="answer_kind"),
]


class ConditionalAttributes(BaseModel):
    """Respondent-supplied flags gating the conditional question ranges."""

    serves_customers: bool = False
    supervises_others: bool = False
