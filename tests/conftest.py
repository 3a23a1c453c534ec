from unittest.mock import AsyncMock

import pytest

from mock_repository import MockRepository
from nom035_engine.catalog import QuestionCatalog
from nom035_engine.flow import AssessmentFlow


@pytest.fixture(scope="session")
def catalog():
    c = QuestionCatalog()
    c.load()
    return c


@pytest.fixture
def mock_repo():
    return MockRepository()


@pytest.fixture
def mock_db():
    """Stand-in AsyncSession; the mock repository never touches it."""
    return AsyncMock()


@pytest.fixture
def flow(catalog, mock_repo):
    return AssessmentFlow(catalog, repo=mock_repo)


@pytest.fixture
def worker(mock_repo):
    return mock_repo.add_worker()
