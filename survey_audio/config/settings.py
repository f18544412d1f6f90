"""
Application settings for the survey audio pipeline.
All configuration values sourced from environment files or process environment.
"""
from functools import lru_cache
from typing import Dict, Any, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings with validation and type safety.

    Built once per process through get_settings() and handed to every
    adapter and use case constructor.
    """

    # ENVIRONMENT & SERVICE
    environment: str = "development"
    service_name: str = "survey-audio"
    log_level: str = "INFO"

    # AWS CORE CONFIGURATION
    aws_region: str = "us-east-1"
    aws_max_retry_attempts: int = 3
    aws_max_pool_connections: int = 20
    aws_connect_timeout_seconds: int = 5
    aws_read_timeout_seconds: int = 15

    # DynamoDB
    dynamodb_endpoint_url: Optional[str] = None
    survey_responses_table_name: str = "survey-audio-survey-responses"
    audio_jobs_table_name: str = "survey-audio-jobs"

    # S3
    s3_endpoint_url: Optional[str] = None
    s3_signature_version: str = "s3v4"
    audio_bucket_name: str = "survey-audios"
    audio_public_base_url: Optional[str] = None
    audio_file_extension: str = ".ogg"
    audio_content_type: str = "audio/ogg"

    # LLM COMPLETION (OpenAI)
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    openai_max_tokens: int = 1024
    openai_temperature: float = 0.7
    openai_timeout_seconds: int = 30
    openai_max_retries: int = 1

    # TEXT TO SPEECH (ElevenLabs)
    elevenlabs_api_key: str = ""
    elevenlabs_api_base: str = "https://api.elevenlabs.io"
    elevenlabs_voice_id: str = "K0Yk2ESZ2dsYv9RrtThg"
    elevenlabs_model_id: str = "eleven_v3"
    elevenlabs_output_format: str = "opus_48000_64"
    elevenlabs_timeout_seconds: int = 60
    voice_stability: float = 0.5
    voice_similarity_boost: float = 0.75
    voice_style: float = 0.0
    voice_use_speaker_boost: bool = True
    # 1000 characters of speech is roughly 75 seconds
    tts_chars_per_second: float = 13.33

    # SCRIPT WINDOW
    script_min_chars: int = 50
    script_max_chars: int = 5000
    script_target_min_chars: int = 200
    script_target_max_chars: int = 1000
    persona_name: str = "André"
    event_name: str = "Imersão Diagnóstico de Vendas"
    script_language: str = "Brazilian Portuguese"

    # CRM (GoHighLevel)
    ghl_api_key: str = ""
    ghl_location_id: str = ""
    ghl_api_base: str = "https://services.leadconnectorhq.com"
    ghl_contacts_api_version: str = "2021-07-28"
    ghl_conversations_api_version: str = "2021-04-15"
    ghl_audio_url_field_key: str = "audio_diagnosticovendas_url"
    ghl_script_field_key: str = "imdiagnosticovendas_audio_script"
    ghl_message_channel: str = "WhatsApp"
    ghl_timeout_seconds: int = 15

    # JOB LIFECYCLE
    job_lease_seconds: int = 300

    # NOTIFICATIONS
    notification_webhook_url: Optional[str] = None
    notification_max_attempts: int = 3
    notification_backoff_seconds: float = 1.0
    notification_timeout_seconds: int = 5
    notification_drain_seconds: float = 5.0

    # Configuration
    model_config = SettingsConfigDict(
        env_file=[".env.local", ".env.development", ".env.staging", ".env.production"],
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment.lower() in ("development", "dev", "local")

    @property
    def use_local_dynamodb(self) -> bool:
        return self.dynamodb_endpoint_url is not None

    @property
    def use_local_s3(self) -> bool:
        return self.s3_endpoint_url is not None

    @property
    def voice_settings(self) -> Dict[str, Any]:
        """Voice shaping parameters sent with every synthesis request."""
        return {
            "stability": self.voice_stability,
            "similarity_boost": self.voice_similarity_boost,
            "style": self.voice_style,
            "use_speaker_boost": self.voice_use_speaker_boost
        }

    @property
    def crm_field_keys(self) -> Dict[str, str]:
        """Logical CRM field name -> provider field key."""
        return {
            "audio_url": self.ghl_audio_url_field_key,
            "script": self.ghl_script_field_key
        }

    def get_public_audio_url(self, object_key: str) -> str:
        """
        Convert a storage object key to its public URL.

        Args:
            object_key: Key like 'user123/1718000000000-ana-example-com.ogg'

        Returns:
            Full URL under the configured public base, or the virtual-hosted
            S3 URL of the audio bucket when no base is configured.
        """
        if not object_key:
            raise ValueError("Object key cannot be empty")

        base_url = self.audio_public_base_url
        if not base_url:
            base_url = f"https://{self.audio_bucket_name}.s3.{self.aws_region}.amazonaws.com"
        if not base_url.endswith('/'):
            base_url += '/'
        return base_url + object_key.lstrip('/')


@lru_cache()
def get_settings() -> Settings:
    """Get process-wide settings (constructed once)."""
    return Settings()
