"""Tests for SubmissionFinalizer atomicity.

The mock repository journals writes made inside ``transaction`` and
undoes them when the block raises, mirroring a SAVEPOINT rollback.
Storage failures are injected with ``mock_repo.fail_on``.
"""

from datetime import datetime, timezone

import pytest

from mock_repository import MockProgress
from nom035_db.models.enums import AssessmentStage, AssessmentType, RiskLevel
from nom035_engine.errors import PersistenceFailure, TokenAlreadyConsumed
from nom035_engine.finalizer import SubmissionFinalizer, response_rows
from nom035_engine.resolver import QuestionSetResolver
from nom035_engine.scoring import ScoringEngine
from nom035_engine.tokens import TokenLifecycle

NOW = datetime(2026, 10, 16, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def finalizer(catalog, mock_repo):
    return SubmissionFinalizer(
        mock_repo, ScoringEngine(catalog), TokenLifecycle(mock_repo), catalog.version
    )


@pytest.fixture
def psychosocial(catalog, mock_repo, worker):
    """A psychosocial token with a draft progress row and a full answer set."""
    token = mock_repo.add_token(worker, "tok-psy")
    progress = MockProgress(
        token_id=token.id,
        stage=AssessmentStage.QUESTIONNAIRE,
        identity_verified_at=NOW,
        consent_accepted_at=NOW,
        conditions={"serves_customers": False, "supervises_others": False},
    )
    mock_repo.progress[token.id] = progress
    questions = QuestionSetResolver(catalog).resolve(AssessmentType.PSYCHOSOCIAL_RISK)
    answers = {q.id: 0 for q in questions}
    return token, progress, questions, answers


async def _finalize(finalizer, mock_db, worker, token, progress, questions, answers):
    return await finalizer.finalize(
        mock_db,
        token=token,
        worker=worker,
        progress=progress,
        questions=questions,
        answers=answers,
        now=NOW,
    )


class TestResponseRows:
    def test_trauma_booleans_as_ints(self, catalog):
        questions = catalog.questions_for(AssessmentType.TRAUMA_SCREENING)[:2]
        rows = response_rows(questions, {1: True, 2: False})
        assert rows == [
            {"question_id": 1, "value": 1, "section": "I"},
            {"question_id": 2, "value": 0, "section": "I"},
        ]

    def test_likert_keeps_index_and_category(self, catalog):
        q = catalog.get_question(AssessmentType.PSYCHOSOCIAL_RISK, 1)
        assert response_rows([q], {1: 3}) == [
            {"question_id": 1, "value": 3, "section": q.category}
        ]


class TestFinalizeSuccess:
    @pytest.mark.asyncio
    async def test_writes_everything(self, finalizer, mock_repo, mock_db, worker, psychosocial):
        token, progress, questions, answers = psychosocial
        finalized = await _finalize(finalizer, mock_db, worker, token, progress, questions, answers)

        evaluation = mock_repo.evaluations[finalized.handle.evaluation_id]
        assert evaluation.total_score == finalized.result.total_score
        assert evaluation.risk_level == finalized.result.risk_level
        assert evaluation.catalog_version == "v1"
        assert evaluation.evaluation_period == "2026"
        assert len(mock_repo.responses) == len(questions) == 64
        assert sum(r["score"] for r in mock_repo.category_scores) == evaluation.total_score
        assert token.consumed is True
        assert token.evaluation_id == evaluation.id
        assert token.id not in mock_repo.progress, "Draft must be deleted on success"

    @pytest.mark.asyncio
    async def test_trauma_has_no_category_scores(self, finalizer, catalog, mock_repo, mock_db, worker):
        token = mock_repo.add_token(
            worker, "tok-tr", assessment_type=AssessmentType.TRAUMA_SCREENING
        )
        progress = MockProgress(token_id=token.id, stage=AssessmentStage.QUESTIONNAIRE)
        mock_repo.progress[token.id] = progress
        questions = catalog.questions_for(AssessmentType.TRAUMA_SCREENING)
        answers = {q.id: q.id in (1, 9) for q in questions}

        finalized = await _finalize(finalizer, mock_db, worker, token, progress, questions, answers)
        evaluation = mock_repo.evaluations[finalized.handle.evaluation_id]
        assert evaluation.requires_attention is True
        assert evaluation.positive_sections == ["I", "III"]
        assert evaluation.total_score is None
        assert mock_repo.category_scores == []
        # No consent timestamp on the draft: started_at falls back to now
        assert evaluation.started_at == NOW


class TestFinalizeAtomicity:
    def _assert_untouched(self, mock_repo, token):
        assert mock_repo.evaluations == {}
        assert mock_repo.responses == []
        assert mock_repo.category_scores == []
        assert token.consumed is False
        assert token.id in mock_repo.progress

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "failing",
        ["create_evaluation", "insert_responses", "insert_category_scores", "claim_token", "delete_progress"],
    )
    async def test_storage_failure_rolls_back(
        self, finalizer, mock_repo, mock_db, worker, psychosocial, failing
    ):
        token, progress, questions, answers = psychosocial
        mock_repo.fail_on = {failing}
        with pytest.raises(PersistenceFailure):
            await _finalize(finalizer, mock_db, worker, token, progress, questions, answers)
        self._assert_untouched(mock_repo, token)

    @pytest.mark.asyncio
    async def test_lost_claim_rolls_back(self, finalizer, mock_repo, mock_db, worker, psychosocial):
        token, progress, questions, answers = psychosocial

        async def lose_race(db, token_id, *, evaluation_id, now):
            # Another submission consumed the token first
            return False

        mock_repo.claim_token = lose_race
        with pytest.raises(TokenAlreadyConsumed):
            await _finalize(finalizer, mock_db, worker, token, progress, questions, answers)
        self._assert_untouched(mock_repo, token)

    @pytest.mark.asyncio
    async def test_already_consumed_before_claim(self, finalizer, mock_repo, mock_db, worker, psychosocial):
        token, progress, questions, answers = psychosocial
        token.consumed = True
        with pytest.raises(TokenAlreadyConsumed):
            await _finalize(finalizer, mock_db, worker, token, progress, questions, answers)
        assert mock_repo.evaluations == {}
        assert mock_repo.responses == []

    @pytest.mark.asyncio
    async def test_retry_after_failure_succeeds(self, finalizer, mock_repo, mock_db, worker, psychosocial):
        token, progress, questions, answers = psychosocial
        mock_repo.fail_on = {"insert_category_scores"}
        with pytest.raises(PersistenceFailure):
            await _finalize(finalizer, mock_db, worker, token, progress, questions, answers)

        mock_repo.fail_on = set()
        finalized = await _finalize(finalizer, mock_db, worker, token, progress, questions, answers)
        assert list(mock_repo.evaluations) == [finalized.handle.evaluation_id]
        assert finalized.result.risk_level in set(RiskLevel)
