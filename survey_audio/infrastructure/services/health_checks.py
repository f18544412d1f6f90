"""
Health checks service for infrastructure components.
Coordinates health checks for DynamoDB tables and the audio bucket.
"""
from typing import Dict, Any

from botocore.exceptions import BotoCoreError, ClientError

from survey_audio.config.settings import Settings
from survey_audio.infrastructure.config.aws_config import AWSConfig
from survey_audio.infrastructure.databases.dynamodb_setup import DynamoDBSetup


CRITICAL_SERVICES = ("dynamodb", "s3")


class HealthCheckService:
    """
    Service for performing health checks on infrastructure components.
    """

    def __init__(self, settings: Settings, aws_config: AWSConfig, dynamodb_setup: DynamoDBSetup):
        self.settings = settings
        self.aws_config = aws_config
        self.dynamodb_setup = dynamodb_setup

    def check_all_services(self) -> Dict[str, Any]:
        return {
            "dynamodb": self._check_dynamodb(),
            "s3": self._check_s3()
        }

    def unhealthy_services(self, results: Dict[str, Any]) -> list:
        return [
            service for service in CRITICAL_SERVICES
            if results.get(service, {}).get("status") != "healthy"
        ]

    def _check_dynamodb(self) -> Dict[str, Any]:
        base = {
            "type": "local" if self.settings.use_local_dynamodb else "aws",
            "endpoint": self.settings.dynamodb_endpoint_url or "AWS Default"
        }
        try:
            details = self.dynamodb_setup.health_check()
        except (BotoCoreError, ClientError) as e:
            return {"status": "unhealthy", "error": str(e), **base}
        return {
            "status": "healthy" if details.get("dynamodb_connection") else "unhealthy",
            "details": details,
            **base
        }

    def _check_s3(self) -> Dict[str, Any]:
        base = {
            "type": "local" if self.settings.use_local_s3 else "aws",
            "endpoint": self.settings.s3_endpoint_url or "AWS Default",
            "bucket": self.settings.audio_bucket_name
        }
        try:
            self.aws_config.s3_client.head_bucket(Bucket=self.settings.audio_bucket_name)
        except (BotoCoreError, ClientError) as e:
            return {"status": "unhealthy", "error": str(e), **base}
        return {"status": "healthy", **base}
