"""Tests for the two scoring algorithms.

Synthetic question lists are built with LikertQuestion / TraumaQuestion
directly so totals can be steered to exact band boundaries; the real
catalog is used for end-to-end totals.
"""

import pytest

from nom035_db.models.enums import AssessmentType, RiskLevel
from nom035_engine.constants import DIRECT_SCALE, INVERTED_SCALE, TRAUMA_ADVISORIES
from nom035_engine.errors import IncompleteResponses, InvalidAnswer
from nom035_engine.models.question import ConditionalAttributes, LikertQuestion, TraumaQuestion
from nom035_engine.models.result import PsychosocialResult, TraumaResult
from nom035_engine.resolver import QuestionSetResolver
from nom035_engine.scoring import (
    ScoringEngine,
    classify_risk,
    likert_value,
    score_psychosocial,
    score_trauma,
)


def _likert(qid, category="ambiente_trabajo", inverted=False):
    return LikertQuestion(
        id=qid,
        text=f"Question {qid}",
        category=category,
        domain="carga_trabajo",
        dimension="test",
        inverted=inverted,
    )


def _direct_questions(total: int) -> tuple[list[LikertQuestion], dict[int, int]]:
    """Direct questions whose answers sum to exactly ``total``."""
    full, rest = divmod(total, 4)
    questions = [_likert(i) for i in range(1, full + 2)]
    answers = {q.id: 0 for q in questions[:full]}  # index 0 scores 4
    answers[questions[-1].id] = 4 - rest  # scores ``rest``
    return questions, answers


@pytest.fixture(scope="module")
def trauma_questions():
    sections = ["I"] * 6 + ["II"] * 2 + ["III"] * 7 + ["IV"] * 5
    return [
        TraumaQuestion(id=i, text=f"Q{i}", section=s)
        for i, s in enumerate(sections, start=1)
    ]


def _trauma_answers(questions, yes_sections=(), yes_ids=()):
    return {
        q.id: (q.section in yes_sections or q.id in yes_ids) for q in questions
    }


# ======================================================================
# Likert value tables
# ======================================================================

class TestLikertValue:
    def test_direct_table(self):
        q = _likert(1)
        assert [likert_value(q, i) for i in range(5)] == [4, 3, 2, 1, 0]

    def test_inverted_table(self):
        q = _likert(1, inverted=True)
        assert [likert_value(q, i) for i in range(5)] == [0, 1, 2, 3, 4]

    def test_tables_are_mirrors(self):
        assert tuple(reversed(DIRECT_SCALE)) == INVERTED_SCALE

    @pytest.mark.parametrize("bad", [-1, 5, 2.0, "2", None, True])
    def test_rejects_bad_index(self, bad):
        with pytest.raises(InvalidAnswer):
            likert_value(_likert(7), bad)


# ======================================================================
# Risk bands
# ======================================================================

class TestClassifyRisk:
    @pytest.mark.parametrize(
        "total,expected",
        [
            (0, RiskLevel.NONE),
            (50, RiskLevel.NONE),
            (51, RiskLevel.LOW),
            (75, RiskLevel.LOW),
            (76, RiskLevel.MEDIUM),
            (99, RiskLevel.MEDIUM),
            (100, RiskLevel.HIGH),
            (139, RiskLevel.HIGH),
            (140, RiskLevel.VERY_HIGH),
            (288, RiskLevel.VERY_HIGH),
        ],
    )
    def test_boundaries(self, catalog, total, expected):
        assert classify_risk(total, catalog.risk_bands).id == expected

    def test_requires_action_from_medium(self, catalog):
        flags = {b.id: b.requires_action for b in catalog.risk_bands}
        assert flags == {
            RiskLevel.NONE: False,
            RiskLevel.LOW: False,
            RiskLevel.MEDIUM: True,
            RiskLevel.HIGH: True,
            RiskLevel.VERY_HIGH: True,
        }

    def test_negative_total(self, catalog):
        with pytest.raises(ValueError):
            classify_risk(-1, catalog.risk_bands)


# ======================================================================
# Weighted-Likert algorithm
# ======================================================================

class TestScorePsychosocial:
    @pytest.mark.parametrize(
        "total,expected",
        [(50, RiskLevel.NONE), (51, RiskLevel.LOW), (99, RiskLevel.MEDIUM), (140, RiskLevel.VERY_HIGH)],
    )
    def test_total_maps_to_band(self, catalog, total, expected):
        questions, answers = _direct_questions(total)
        result = score_psychosocial(questions, answers, catalog.risk_bands)
        assert result.total_score == total
        assert result.risk_level == expected

    def test_inverted_and_direct_differ(self, catalog):
        questions = [_likert(1), _likert(2, inverted=True)]
        result = score_psychosocial(questions, {1: 0, 2: 0}, catalog.risk_bands)
        # "always": 4 on the direct question, 0 on the inverted one
        assert result.total_score == 4

    def test_category_scores_sum_to_total(self, catalog):
        questions = [
            _likert(1, "ambiente_trabajo"),
            _likert(2, "liderazgo"),
            _likert(3, "liderazgo", inverted=True),
        ]
        result = score_psychosocial(questions, {1: 1, 2: 2, 3: 4}, catalog.risk_bands)
        assert result.category_scores == {"ambiente_trabajo": 3, "liderazgo": 6}
        assert sum(result.category_scores.values()) == result.total_score == 9

    def test_advisory_from_band(self, catalog):
        questions, answers = _direct_questions(120)
        result = score_psychosocial(questions, answers, catalog.risk_bands)
        assert result.risk_level == RiskLevel.HIGH
        assert result.requires_action is True
        assert result.advisory.startswith("Analyse each category")

    def test_incomplete(self, catalog):
        questions = [_likert(1), _likert(2), _likert(3)]
        with pytest.raises(IncompleteResponses) as exc:
            score_psychosocial(questions, {1: 0}, catalog.risk_bands)
        assert exc.value.missing == [2, 3]

    def test_extra_answers_ignored(self, catalog):
        questions = [_likert(1)]
        result = score_psychosocial(questions, {1: 4, 99: 0}, catalog.risk_bands)
        assert result.total_score == 0

    def test_catalog_extremes(self, catalog):
        """All 72 questions at both ends of the scale."""
        resolver = QuestionSetResolver(catalog)
        questions = resolver.resolve(
            AssessmentType.PSYCHOSOCIAL_RISK,
            ConditionalAttributes(serves_customers=True, supervises_others=True),
        )
        inverted = sum(1 for q in questions if q.inverted)
        direct = len(questions) - inverted

        always = score_psychosocial(questions, {q.id: 0 for q in questions}, catalog.risk_bands)
        never = score_psychosocial(questions, {q.id: 4 for q in questions}, catalog.risk_bands)
        assert always.total_score == 4 * direct
        assert never.total_score == 4 * inverted
        assert always.total_score + never.total_score == 4 * len(questions)

    def test_deterministic(self, catalog):
        questions, answers = _direct_questions(87)
        first = score_psychosocial(questions, answers, catalog.risk_bands)
        second = score_psychosocial(questions, answers, catalog.risk_bands)
        assert first == second


# ======================================================================
# Binary-section algorithm
# ======================================================================

class TestScoreTrauma:
    def test_no_exposure(self, trauma_questions):
        result = score_trauma(trauma_questions, _trauma_answers(trauma_questions))
        assert result.requires_attention is False
        assert result.positive_sections == []
        assert result.advisory == TRAUMA_ADVISORIES["no_exposure"]

    def test_after_effects_without_exposure(self, trauma_questions):
        answers = _trauma_answers(trauma_questions, yes_sections=("III",))
        result = score_trauma(trauma_questions, answers)
        assert result.requires_attention is False
        assert result.positive_sections == ["III"]
        assert result.advisory == TRAUMA_ADVISORIES["no_exposure"]

    def test_exposure_only(self, trauma_questions):
        answers = _trauma_answers(trauma_questions, yes_ids=(2,))
        result = score_trauma(trauma_questions, answers)
        assert result.requires_attention is False
        assert result.positive_sections == ["I"]
        assert result.advisory == TRAUMA_ADVISORIES["follow_up"]

    @pytest.mark.parametrize("after_effect_id", [7, 10, 16])
    def test_exposure_with_after_effects(self, trauma_questions, after_effect_id):
        answers = _trauma_answers(trauma_questions, yes_ids=(1, after_effect_id))
        result = score_trauma(trauma_questions, answers)
        assert result.requires_attention is True
        assert result.requires_action is True
        assert result.positive_sections[0] == "I"
        assert result.advisory == TRAUMA_ADVISORIES["attention"]

    def test_positive_sections_ordered(self, trauma_questions):
        answers = _trauma_answers(trauma_questions, yes_ids=(20, 1, 8))
        result = score_trauma(trauma_questions, answers, ["I", "II", "III", "IV"])
        assert result.positive_sections == ["I", "II", "IV"]

    def test_incomplete(self, trauma_questions):
        answers = _trauma_answers(trauma_questions)
        del answers[20]
        with pytest.raises(IncompleteResponses) as exc:
            score_trauma(trauma_questions, answers)
        assert exc.value.missing == [20]


# ======================================================================
# Dispatcher
# ======================================================================

class TestScoringEngine:
    def test_dispatches_trauma(self, catalog):
        engine = ScoringEngine(catalog)
        questions = catalog.questions_for(AssessmentType.TRAUMA_SCREENING)
        result = engine.score(
            AssessmentType.TRAUMA_SCREENING, questions, {q.id: False for q in questions}
        )
        assert isinstance(result, TraumaResult)

    def test_dispatches_psychosocial(self, catalog):
        engine = ScoringEngine(catalog)
        questions = QuestionSetResolver(catalog).resolve(AssessmentType.PSYCHOSOCIAL_RISK)
        result = engine.score(
            "psychosocial_risk", questions, {q.id: 2 for q in questions}
        )
        assert isinstance(result, PsychosocialResult)
        assert result.total_score == 2 * len(questions)
        assert set(result.category_scores) <= set(catalog.categories)
