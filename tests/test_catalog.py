"""Tests for QuestionCatalog loading and validation of the v1 YAML files."""

import shutil
from pathlib import Path

import pytest
import yaml

from nom035_db.models.enums import AssessmentType, RiskLevel
from nom035_engine.catalog import QuestionCatalog
from nom035_engine.models.question import LikertQuestion, TraumaQuestion

V1_DIR = Path(__file__).resolve().parents[1] / "src" / "nom035_engine" / "v1"


def _copy_catalog(tmp_path: Path) -> Path:
    target = tmp_path / "v1"
    shutil.copytree(V1_DIR, target)
    return target


def _rewrite(path: Path, mutate) -> None:
    with path.open(encoding="utf-8") as f:
        data = yaml.safe_load(f)
    mutate(data)
    with path.open("w", encoding="utf-8") as f:
        yaml.safe_dump(data, f, allow_unicode=True)


class TestLoadedCatalog:
    """The shipped catalog loads and has the expected shape."""

    def test_loaded_flag_and_version(self, catalog):
        assert catalog.loaded
        assert catalog.version == "v1"

    def test_trauma_questions(self, catalog):
        questions = catalog.questions_for(AssessmentType.TRAUMA_SCREENING)
        assert len(questions) == 20
        assert all(isinstance(q, TraumaQuestion) for q in questions)
        assert [q.id for q in questions] == list(range(1, 21))
        assert list(catalog.sections) == ["I", "II", "III", "IV"]

    def test_trauma_section_sizes(self, catalog):
        counts = {}
        for q in catalog.trauma_questions.values():
            counts[q.section] = counts.get(q.section, 0) + 1
        assert counts == {"I": 6, "II": 2, "III": 7, "IV": 5}

    def test_psychosocial_questions(self, catalog):
        questions = catalog.questions_for(AssessmentType.PSYCHOSOCIAL_RISK)
        assert len(questions) == 72
        assert all(isinstance(q, LikertQuestion) for q in questions)
        assert len(catalog.categories) == 5
        assert len(catalog.domains) == 10

    def test_every_question_has_known_grouping(self, catalog):
        for q in catalog.psychosocial_questions.values():
            assert q.category in catalog.categories, f"Q{q.id} has unknown category"
            assert q.domain in catalog.domains, f"Q{q.id} has unknown domain"

    def test_conditional_ranges(self, catalog):
        ranges = {r.attribute: (r.first, r.last) for r in catalog.conditional_ranges}
        assert ranges == {"serves_customers": (65, 68), "supervises_others": (69, 72)}

    def test_likert_labels(self, catalog):
        assert len(catalog.likert_labels) == 5
        assert catalog.likert_labels[0] == "Siempre"
        assert catalog.likert_labels[4] == "Nunca"

    def test_risk_bands(self, catalog):
        bands = [(b.id, b.min, b.max) for b in catalog.risk_bands]
        assert bands == [
            (RiskLevel.NONE, 0, 50),
            (RiskLevel.LOW, 51, 75),
            (RiskLevel.MEDIUM, 76, 99),
            (RiskLevel.HIGH, 100, 139),
            (RiskLevel.VERY_HIGH, 140, None),
        ]

    def test_titles(self, catalog):
        assert "traumatic" in catalog.title_for(AssessmentType.TRAUMA_SCREENING)
        assert "psychosocial" in catalog.title_for(AssessmentType.PSYCHOSOCIAL_RISK)


class TestLookup:
    def test_get_question(self, catalog):
        q = catalog.get_question(AssessmentType.PSYCHOSOCIAL_RISK, 65)
        assert q.id == 65
        assert catalog.get_question("trauma_screening", 1).section == "I"

    def test_get_unknown_question(self, catalog):
        with pytest.raises(KeyError):
            catalog.get_question(AssessmentType.TRAUMA_SCREENING, 21)


class TestValidation:
    """Malformed catalogs are rejected at load time."""

    def test_missing_file(self, tmp_path):
        target = _copy_catalog(tmp_path)
        (target / "risk_levels.yaml").unlink()
        with pytest.raises(FileNotFoundError):
            QuestionCatalog(target).load()

    def test_unknown_section(self, tmp_path):
        target = _copy_catalog(tmp_path)
        _rewrite(
            target / "trauma_screening.yaml",
            lambda d: d["questions"][0].update(section="IX"),
        )
        with pytest.raises(ValueError, match="unknown section"):
            QuestionCatalog(target).load()

    def test_non_contiguous_ids(self, tmp_path):
        target = _copy_catalog(tmp_path)
        _rewrite(
            target / "trauma_screening.yaml",
            lambda d: d["questions"][4].update(id=99),
        )
        with pytest.raises(ValueError, match="must run"):
            QuestionCatalog(target).load()

    def test_unknown_attribute(self, tmp_path):
        target = _copy_catalog(tmp_path)
        _rewrite(
            target / "psychosocial_risk.yaml",
            lambda d: d["conditional_ranges"][0].update(attribute="drives_vehicle"),
        )
        with pytest.raises(ValueError, match="unknown attribute"):
            QuestionCatalog(target).load()

    def test_band_gap(self, tmp_path):
        target = _copy_catalog(tmp_path)
        _rewrite(target / "risk_levels.yaml", lambda d: d[1].update(min=52))
        with pytest.raises(ValueError, match="not contiguous"):
            QuestionCatalog(target).load()

    def test_closed_last_band(self, tmp_path):
        target = _copy_catalog(tmp_path)
        _rewrite(target / "risk_levels.yaml", lambda d: d[-1].update(max=288))
        with pytest.raises(ValueError, match="open-ended"):
            QuestionCatalog(target).load()
