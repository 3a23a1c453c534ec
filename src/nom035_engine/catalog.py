"""QuestionCatalog — loads the versioned questionnaires from ``v1/``.

This is the single source of truth for question data at runtime.  The
catalog is loaded once at startup, validated, and then only read.

Usage::

    catalog = QuestionCatalog()     # defaults to v1/ next to this module
    catalog.load()                  # parse and validate all YAML files

    questions = catalog.questions_for(AssessmentType.TRAUMA_SCREENING)
    q = catalog.get_question(AssessmentType.PSYCHOSOCIAL_RISK, 65)
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from nom035_db.models.enums import AssessmentType
from nom035_engine.models.question import (
    ConditionalAttributes,
    LikertQuestion,
    TraumaQuestion,
)
from nom035_engine.models.schema import (
    Category,
    ConditionalRange,
    Domain,
    RiskBand,
    Section,
)

logger = logging.getLogger(__name__)


def load_yaml(path: Path | str) -> Any:
    """Load a single YAML file and return the parsed contents."""
    if isinstance(path, str):
        path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Missing YAML file: {path}")
    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f)


def _check_contiguous_ids(ids: list[int], label: str) -> None:
    """Question ids must be unique and run 1..N in file order."""
    if len(set(ids)) != len(ids):
        raise ValueError(f"{label}: duplicate question ids")
    if ids != list(range(1, len(ids) + 1)):
        raise ValueError(f"{label}: question ids must run 1..{len(ids)} in order")


class QuestionCatalog:
    """Loads both questionnaires and the risk bands, and provides lookup.

    Attributes populated after :meth:`load`:

        titles                 — dict[AssessmentType, str]
        sections               — dict[id, Section] (trauma, YAML order)
        trauma_questions       — dict[qid, TraumaQuestion]
        categories             — dict[id, Category] (YAML order)
        domains                — dict[id, Domain]
        psychosocial_questions — dict[qid, LikertQuestion]
        conditional_ranges     — list[ConditionalRange]
        likert_labels          — list[str] (Spanish display labels, index 0..4)
        risk_bands             — list[RiskBand] ordered by ``min``
    """

    def __init__(self, catalog_dir: str | Path | None = None) -> None:
        if catalog_dir is None:
            catalog_dir = Path(__file__).parent / "v1"
        self._base = Path(catalog_dir)

        # Populated by load()
        self.titles: dict[AssessmentType, str] = {}
        self.sections: dict[str, Section] = {}
        self.trauma_questions: dict[int, TraumaQuestion] = {}
        self.categories: dict[str, Category] = {}
        self.domains: dict[str, Domain] = {}
        self.psychosocial_questions: dict[int, LikertQuestion] = {}
        self.conditional_ranges: list[ConditionalRange] = []
        self.likert_labels: list[str] = []
        self.risk_bands: list[RiskBand] = []
        self._loaded = False

    @property
    def version(self) -> str:
        """Catalog version recorded on every evaluation (the directory name)."""
        return self._base.name

    @property
    def loaded(self) -> bool:
        return self._loaded

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load(self) -> None:
        """Parse and validate all YAML files under the catalog directory.

        Call this once at startup.  Raises ``FileNotFoundError`` if a file
        is missing and ``ValueError`` if the catalog is malformed.
        """
        self._load_trauma()
        self._load_psychosocial()
        self._load_risk_levels()
        self._loaded = True
        logger.info(
            "QuestionCatalog %s loaded: %d trauma questions, %d psychosocial "
            "questions, %d risk bands",
            self.version,
            len(self.trauma_questions),
            len(self.psychosocial_questions),
            len(self.risk_bands),
        )

    def _load_trauma(self) -> None:
        """Load v1/trauma_screening.yaml: sections and yes/no questions."""
        raw = load_yaml(self._base / "trauma_screening.yaml")
        self.titles[AssessmentType.TRAUMA_SCREENING] = raw["title"]

        for item in raw["sections"]:
            section = Section(**item)
            self.sections[section.id] = section

        ids: list[int] = []
        for item in raw["questions"]:
            q = TraumaQuestion(**item)
            if q.section not in self.sections:
                raise ValueError(f"Trauma question {q.id}: unknown section '{q.section}'")
            self.trauma_questions[q.id] = q
            ids.append(q.id)
        _check_contiguous_ids(ids, "trauma_screening")

    def _load_psychosocial(self) -> None:
        """Load v1/psychosocial_risk.yaml: groupings, conditional ranges, questions."""
        raw = load_yaml(self._base / "psychosocial_risk.yaml")
        self.titles[AssessmentType.PSYCHOSOCIAL_RISK] = raw["title"]
        self.likert_labels = list(raw["likert_labels"])
        if len(self.likert_labels) != 5:
            raise ValueError("psychosocial_risk: expected 5 Likert labels")

        for item in raw["categories"]:
            cat = Category(**item)
            self.categories[cat.id] = cat
        for item in raw["domains"]:
            dom = Domain(**item)
            self.domains[dom.id] = dom

        ids: list[int] = []
        for item in raw["questions"]:
            q = LikertQuestion(**item)
            if q.category not in self.categories:
                raise ValueError(f"Question {q.id}: unknown category '{q.category}'")
            if q.domain not in self.domains:
                raise ValueError(f"Question {q.id}: unknown domain '{q.domain}'")
            self.psychosocial_questions[q.id] = q
            ids.append(q.id)
        _check_contiguous_ids(ids, "psychosocial_risk")

        known_attributes = set(ConditionalAttributes.model_fields)
        for item in raw.get("conditional_ranges", []):
            rng = ConditionalRange(**item)
            if rng.attribute not in known_attributes:
                raise ValueError(f"Conditional range: unknown attribute '{rng.attribute}'")
            if rng.first not in self.psychosocial_questions or rng.last not in self.psychosocial_questions:
                raise ValueError(
                    f"Conditional range {rng.first}-{rng.last} references unknown questions"
                )
            self.conditional_ranges.append(rng)

    def _load_risk_levels(self) -> None:
        """Load v1/risk_levels.yaml and check the bands tile 0..infinity."""
        bands = sorted(
            (RiskBand(**item) for item in load_yaml(self._base / "risk_levels.yaml")),
            key=lambda b: b.min,
        )
        if not bands or bands[0].min != 0:
            raise ValueError("risk_levels: bands must start at 0")
        for prev, nxt in zip(bands, bands[1:]):
            if prev.max is None or prev.max + 1 != nxt.min:
                raise ValueError(
                    f"risk_levels: band '{prev.id.value}' is not contiguous with '{nxt.id.value}'"
                )
        if bands[-1].max is not None:
            raise ValueError("risk_levels: the last band must be open-ended")
        self.risk_bands = bands

    # ------------------------------------------------------------------
    # Lookup helpers
    # ------------------------------------------------------------------

    def title_for(self, assessment_type: AssessmentType) -> str:
        return self.titles[AssessmentType(assessment_type)]

    def questions_for(
        self, assessment_type: AssessmentType
    ) -> list[TraumaQuestion] | list[LikertQuestion]:
        """Return every question of a questionnaire in catalog order (unfiltered)."""
        if AssessmentType(assessment_type) == AssessmentType.TRAUMA_SCREENING:
            return list(self.trauma_questions.values())
        return list(self.psychosocial_questions.values())

    def get_question(
        self, assessment_type: AssessmentType, qid: int
    ) -> TraumaQuestion | LikertQuestion:
        """Look up one question.

        Raises:
            KeyError: if the questionnaire has no question ``qid``.
        """
        if AssessmentType(assessment_type) == AssessmentType.TRAUMA_SCREENING:
            return self.trauma_questions[qid]
        return self.psychosocial_questions[qid]
