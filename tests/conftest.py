"""Pytest configuration and shared fixtures."""
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from unittest.mock import AsyncMock, Mock

from shared.models.entities import Base
from tutor.models.learning import AuthoredQuestion, ModuleDetail, ModuleSection


@pytest.fixture(scope="function")
def db_session():
    """
    Create a test database session with in-memory SQLite.

    This fixture creates a fresh database for each test function,
    ensuring test isolation.
    """
    engine = create_engine("sqlite:///:memory:", echo=False)
    Base.metadata.create_all(engine)

    SessionLocal = sessionmaker(bind=engine)
    session = SessionLocal()

    yield session

    session.close()
    Base.metadata.drop_all(engine)


@pytest.fixture
def sample_module():
    """Module with three authored questions in one section."""
    return ModuleDetail(
        id="mod-fractions",
        title="Fractions",
        description="Comparing and adding simple fractions",
        learning_objectives=["Compare fractions with like denominators"],
        sections=[
            ModuleSection(
                id="intro",
                title="Introduction",
                content="A fraction has a numerator and a denominator.",
                questions=[
                    AuthoredQuestion(question="What is the top number of a fraction called?", expected_answer="numerator"),
                    AuthoredQuestion(question="Which is larger, 3/4 or 1/4?", expected_answer="3/4", hint="Compare the numerators"),
                    AuthoredQuestion(question="What is 1/4 + 2/4?", expected_answer="3/4"),
                ],
            )
        ],
    )


@pytest.fixture
def bare_module():
    """Module without authored questions, so questions must be generated."""
    return ModuleDetail(
        id="mod-photosynthesis",
        title="Photosynthesis",
        description="How plants make food from light",
        learning_objectives=["Explain the inputs of photosynthesis"],
        sections=[ModuleSection(id="basics", title="Basics", content="Plants use light, water and CO2.")],
    )


@pytest.fixture
def mock_capabilities():
    """TutorCapabilities double with pass-through level adjustment."""
    capabilities = Mock()
    capabilities.generate_questions = AsyncMock(return_value=[])
    capabilities.evaluate_answer = AsyncMock(return_value={
        "is_correct": True, "score": 90, "feedback": "Nice work.",
    })
    capabilities.generate_conversational_reply = AsyncMock(return_value="Happy to help!")
    capabilities.adjust_text_for_level = AsyncMock(side_effect=lambda text, tier: text)
    return capabilities
