"""
Shared test configuration and fixtures for the survey audio tests.
"""
import pytest
from unittest.mock import AsyncMock
from fastapi.testclient import TestClient

from survey_audio.api.dependencies import DependencyContainer, get_dependency_container
from survey_audio.config.settings import Settings
from survey_audio.core.models.survey_response import SurveyResponse
from survey_audio.core.services.script_generator import ScriptGenerator
from survey_audio.core.usecases.generate_audio import GenerateAudioUseCase
from survey_audio.core.usecases.send_audio_message import SendAudioMessageUseCase
from survey_audio.main import create_app

from tests.utils.mock_helpers import (
    InMemoryJobRepository,
    InMemorySurveyRepository,
    MockHelpers,
    RecordingNotifier,
)


# ENVIRONMENT & CONFIGURATION FIXTURES

@pytest.fixture
def test_settings() -> Settings:
    return MockHelpers.create_test_settings()


# TEST DATA FIXTURES

@pytest.fixture
def sample_survey() -> SurveyResponse:
    return MockHelpers.create_survey()


# FAKE AND MOCK PORT FIXTURES (for unit tests)

@pytest.fixture
def survey_repository(sample_survey) -> InMemorySurveyRepository:
    return InMemorySurveyRepository([sample_survey])


@pytest.fixture
def job_repository() -> InMemoryJobRepository:
    return InMemoryJobRepository()


@pytest.fixture
def mock_completion_service() -> AsyncMock:
    return MockHelpers.create_mock_completion_service()


@pytest.fixture
def mock_speech_synthesizer() -> AsyncMock:
    return MockHelpers.create_mock_speech_synthesizer()


@pytest.fixture
def mock_artifact_storage() -> AsyncMock:
    return MockHelpers.create_mock_artifact_storage()


@pytest.fixture
def mock_crm_service() -> AsyncMock:
    return MockHelpers.create_mock_crm_service()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def script_generator(mock_completion_service, test_settings) -> ScriptGenerator:
    return ScriptGenerator(
        completion_service=mock_completion_service,
        persona_name=test_settings.persona_name,
        event_name=test_settings.event_name,
        language=test_settings.script_language
    )


@pytest.fixture
def generate_audio_use_case(
    survey_repository,
    job_repository,
    script_generator,
    mock_speech_synthesizer,
    mock_artifact_storage,
    mock_crm_service,
    notifier,
    test_settings
) -> GenerateAudioUseCase:
    return GenerateAudioUseCase(
        survey_repository=survey_repository,
        job_repository=job_repository,
        script_generator=script_generator,
        speech_synthesizer=mock_speech_synthesizer,
        artifact_storage=mock_artifact_storage,
        crm_service=mock_crm_service,
        notifier=notifier,
        script_min_chars=test_settings.script_min_chars,
        script_max_chars=test_settings.script_max_chars,
        job_lease_seconds=test_settings.job_lease_seconds
    )


@pytest.fixture
def send_audio_message_use_case(job_repository, mock_artifact_storage, mock_crm_service) -> SendAudioMessageUseCase:
    return SendAudioMessageUseCase(
        job_repository=job_repository,
        artifact_storage=mock_artifact_storage,
        crm_service=mock_crm_service
    )


# API TESTING FIXTURES

@pytest.fixture
def container(
    test_settings,
    survey_repository,
    job_repository,
    mock_completion_service,
    mock_speech_synthesizer,
    mock_artifact_storage,
    mock_crm_service,
    notifier
) -> DependencyContainer:
    """Global container wired to fakes; restored after the test."""
    get_dependency_container.cache_clear()
    container = get_dependency_container()
    container.override_settings(test_settings)
    container.override_survey_repository(survey_repository)
    container.override_job_repository(job_repository)
    container.override_completion_service(mock_completion_service)
    container.override_speech_synthesizer(mock_speech_synthesizer)
    container.override_artifact_storage(mock_artifact_storage)
    container.override_crm_service(mock_crm_service)
    container.override_notifier(notifier)
    yield container
    get_dependency_container.cache_clear()


@pytest.fixture
def client(container):
    """Create FastAPI test client."""
    with TestClient(create_app()) as test_client:
        yield test_client
