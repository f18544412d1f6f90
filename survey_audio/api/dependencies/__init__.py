"""
Dependency injection configuration for the survey audio service.
Central wiring of ports to adapters, shared by the HTTP app and the Lambda handler.
"""
from functools import lru_cache
from typing import Optional

from survey_audio.config.settings import Settings, get_settings
from survey_audio.infrastructure.config.aws_config import AWSConfig
from survey_audio.infrastructure.databases.dynamodb_setup import DynamoDBSetup
from survey_audio.infrastructure.services.health_checks import HealthCheckService

# Domain ports
from survey_audio.core.ports.survey_repository import SurveyRepositoryPort
from survey_audio.core.ports.job_repository import JobRepositoryPort
from survey_audio.core.ports.completion_service import CompletionServicePort
from survey_audio.core.ports.speech_synthesis import SpeechSynthesisPort
from survey_audio.core.ports.artifact_storage import ArtifactStoragePort
from survey_audio.core.ports.crm_service import CrmServicePort
from survey_audio.core.ports.notifier import NotifierPort

# Domain services and use cases
from survey_audio.core.services.script_generator import ScriptGenerator
from survey_audio.core.usecases.generate_audio import GenerateAudioUseCase
from survey_audio.core.usecases.send_audio_message import SendAudioMessageUseCase

# Infrastructure adapters
from survey_audio.adapters.repositories.dynamodb_survey_repository import DynamoDBSurveyRepository
from survey_audio.adapters.repositories.dynamodb_job_repository import DynamoDBJobRepository
from survey_audio.adapters.services.openai_completion_service import OpenAICompletionService
from survey_audio.adapters.services.elevenlabs_speech_service import ElevenLabsSpeechService
from survey_audio.adapters.services.s3_artifact_storage import S3ArtifactStorage
from survey_audio.adapters.services.ghl_crm_service import GhlCrmService
from survey_audio.adapters.services.webhook_notifier import WebhookNotifier, NullNotifier


class DependencyContainer:
    """
    Dependency injection container following Clean Architecture.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self._settings = settings
        self._aws_config = None
        self._dynamodb_setup = None
        self._health_check_service = None
        self._survey_repository = None
        self._job_repository = None
        self._completion_service = None
        self._speech_synthesizer = None
        self._artifact_storage = None
        self._crm_service = None
        self._notifier = None
        self._script_generator = None
        self._generate_audio_use_case = None
        self._send_audio_message_use_case = None

    # CONFIGURATION
    @property
    def settings(self) -> Settings:
        if self._settings is None:
            self._settings = get_settings()
        return self._settings

    @property
    def aws_config(self) -> AWSConfig:
        if self._aws_config is None:
            self._aws_config = AWSConfig(self.settings)
        return self._aws_config

    @property
    def dynamodb_setup(self) -> DynamoDBSetup:
        if self._dynamodb_setup is None:
            self._dynamodb_setup = DynamoDBSetup(self.settings, self.aws_config)
        return self._dynamodb_setup

    @property
    def health_check_service(self) -> HealthCheckService:
        if self._health_check_service is None:
            self._health_check_service = HealthCheckService(self.settings, self.aws_config, self.dynamodb_setup)
        return self._health_check_service

    # INFRASTRUCTURE LAYER (Outer layer)
    @property
    def survey_repository(self) -> SurveyRepositoryPort:
        """Get survey repository instance (singleton)."""
        if self._survey_repository is None:
            self._survey_repository = DynamoDBSurveyRepository(self.settings, self.aws_config)
        return self._survey_repository

    @property
    def job_repository(self) -> JobRepositoryPort:
        """Get audio job repository instance (singleton)."""
        if self._job_repository is None:
            self._job_repository = DynamoDBJobRepository(self.settings, self.aws_config)
        return self._job_repository

    @property
    def completion_service(self) -> CompletionServicePort:
        if self._completion_service is None:
            self._completion_service = OpenAICompletionService(self.settings)
        return self._completion_service

    @property
    def speech_synthesizer(self) -> SpeechSynthesisPort:
        if self._speech_synthesizer is None:
            self._speech_synthesizer = ElevenLabsSpeechService(self.settings)
        return self._speech_synthesizer

    @property
    def artifact_storage(self) -> ArtifactStoragePort:
        """Get audio artifact storage instance (singleton)."""
        if self._artifact_storage is None:
            self._artifact_storage = S3ArtifactStorage(self.settings, self.aws_config)
        return self._artifact_storage

    @property
    def crm_service(self) -> CrmServicePort:
        if self._crm_service is None:
            self._crm_service = GhlCrmService(self.settings)
        return self._crm_service

    @property
    def notifier(self) -> NotifierPort:
        """Webhook notifier when a URL is configured, otherwise a no-op."""
        if self._notifier is None:
            if self.settings.notification_webhook_url:
                self._notifier = WebhookNotifier(self.settings)
            else:
                self._notifier = NullNotifier()
        return self._notifier

    # APPLICATION LAYER (Use cases)
    @property
    def script_generator(self) -> ScriptGenerator:
        if self._script_generator is None:
            self._script_generator = ScriptGenerator(
                completion_service=self.completion_service,
                persona_name=self.settings.persona_name,
                event_name=self.settings.event_name,
                language=self.settings.script_language,
                target_min_chars=self.settings.script_target_min_chars,
                target_max_chars=self.settings.script_target_max_chars
            )
        return self._script_generator

    @property
    def generate_audio_use_case(self) -> GenerateAudioUseCase:
        """Get generate audio use case (singleton)."""
        if self._generate_audio_use_case is None:
            self._generate_audio_use_case = GenerateAudioUseCase(
                survey_repository=self.survey_repository,
                job_repository=self.job_repository,
                script_generator=self.script_generator,
                speech_synthesizer=self.speech_synthesizer,
                artifact_storage=self.artifact_storage,
                crm_service=self.crm_service,
                notifier=self.notifier,
                script_min_chars=self.settings.script_min_chars,
                script_max_chars=self.settings.script_max_chars,
                job_lease_seconds=self.settings.job_lease_seconds
            )
        return self._generate_audio_use_case

    @property
    def send_audio_message_use_case(self) -> SendAudioMessageUseCase:
        """Get send audio message use case (singleton)."""
        if self._send_audio_message_use_case is None:
            self._send_audio_message_use_case = SendAudioMessageUseCase(
                job_repository=self.job_repository,
                artifact_storage=self.artifact_storage,
                crm_service=self.crm_service
            )
        return self._send_audio_message_use_case

    # TESTING SUPPORT
    def override_settings(self, settings: Settings) -> None:
        """Override settings (for testing). Resets everything built from them."""
        self.__init__(settings)

    def _reset_use_cases(self) -> None:
        self._generate_audio_use_case = None
        self._send_audio_message_use_case = None

    def override_survey_repository(self, repository: SurveyRepositoryPort) -> None:
        """Override survey repository (for testing)."""
        self._survey_repository = repository
        self._reset_use_cases()

    def override_job_repository(self, repository: JobRepositoryPort) -> None:
        """Override job repository (for testing)."""
        self._job_repository = repository
        self._reset_use_cases()

    def override_completion_service(self, service: CompletionServicePort) -> None:
        """Override completion service (for testing)."""
        self._completion_service = service
        self._script_generator = None
        self._reset_use_cases()

    def override_speech_synthesizer(self, service: SpeechSynthesisPort) -> None:
        self._speech_synthesizer = service
        self._reset_use_cases()

    def override_artifact_storage(self, storage: ArtifactStoragePort) -> None:
        self._artifact_storage = storage
        self._reset_use_cases()

    def override_crm_service(self, service: CrmServicePort) -> None:
        self._crm_service = service
        self._reset_use_cases()

    def override_notifier(self, notifier: NotifierPort) -> None:
        self._notifier = notifier
        self._reset_use_cases()

    def override_health_check_service(self, service: HealthCheckService) -> None:
        self._health_check_service = service


# GLOBAL CONTAINER INSTANCE
@lru_cache()
def get_dependency_container() -> DependencyContainer:
    """Get global dependency container (singleton)."""
    return DependencyContainer()


# FASTAPI DEPENDENCY FUNCTIONS
def get_app_settings() -> Settings:
    """FastAPI dependency for settings."""
    return get_dependency_container().settings


def get_generate_audio_use_case() -> GenerateAudioUseCase:
    """FastAPI dependency for generate audio use case."""
    return get_dependency_container().generate_audio_use_case


def get_send_audio_message_use_case() -> SendAudioMessageUseCase:
    """FastAPI dependency for send audio message use case."""
    return get_dependency_container().send_audio_message_use_case


def get_health_check_service() -> HealthCheckService:
    """FastAPI dependency for health check service."""
    return get_dependency_container().health_check_service


# CONFIGURATION VALIDATION
def validate_dependencies() -> None:
    """
    Validate that all dependencies can be created successfully.
    Call this at application startup.
    """
    container = get_dependency_container()
    container.generate_audio_use_case
    container.send_audio_message_use_case
    container.health_check_service
