"""
AWS service configuration and client management.
Handles connection to DynamoDB and S3 with environment-specific settings.
"""
import boto3
from botocore.config import Config
from typing import Optional, Dict, Any

from survey_audio.config.settings import Settings


class AWSConfig:
    """
    Manages AWS service connections and configuration.
    Clients are created lazily and reused for the life of the process.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self._dynamodb_resource = None
        self._dynamodb_client = None
        self._s3_client = None
        self._boto_config = Config(
            region_name=settings.aws_region,
            retries={
                'max_attempts': settings.aws_max_retry_attempts,
                'mode': 'adaptive'
            },
            max_pool_connections=settings.aws_max_pool_connections,
            connect_timeout=settings.aws_connect_timeout_seconds,
            read_timeout=settings.aws_read_timeout_seconds
        )

    @property
    def dynamodb_resource(self):
        """Get or create DynamoDB resource with proper configuration."""
        if self._dynamodb_resource is None:
            self._dynamodb_resource = boto3.resource(**self._dynamodb_kwargs())
        return self._dynamodb_resource

    @property
    def dynamodb_client(self):
        if self._dynamodb_client is None:
            self._dynamodb_client = boto3.client(**self._dynamodb_kwargs())
        return self._dynamodb_client

    @property
    def s3_client(self):
        """Get or create S3 client with proper configuration."""
        if self._s3_client is None:
            self._s3_client = self._create_s3_client()
        return self._s3_client

    def _dynamodb_kwargs(self) -> Dict[str, Any]:
        kwargs = {
            'service_name': 'dynamodb',
            'config': self._boto_config,
            'region_name': self.settings.aws_region
        }
        if self.settings.use_local_dynamodb:
            kwargs.update({
                'endpoint_url': self.settings.dynamodb_endpoint_url,
                'aws_access_key_id': 'fakeMyKeyId',
                'aws_secret_access_key': 'fakeSecretAccessKey'
            })
        return kwargs

    def _create_s3_client(self):
        s3_config = self._boto_config.merge(Config(signature_version=self.settings.s3_signature_version))
        kwargs = {
            'service_name': 's3',
            'config': s3_config,
            'region_name': self.settings.aws_region
        }
        if self.settings.use_local_s3:
            kwargs.update({
                'endpoint_url': self.settings.s3_endpoint_url,
                'aws_access_key_id': 'minioadmin',
                'aws_secret_access_key': 'minioadmin'
            })
        return boto3.client(**kwargs)

    def get_table(self, table_name: str):
        """
        Get DynamoDB table with error handling.

        Args:
            table_name: Name of the DynamoDB table

        Returns:
            DynamoDB table resource

        Raises:
            ConnectionError: If table connection fails
        """
        try:
            return self.dynamodb_resource.Table(table_name)
        except Exception as e:
            raise ConnectionError(
                f"Failed to connect to DynamoDB table '{table_name}': {str(e)}"
            )

    def describe(self) -> Dict[str, Optional[str]]:
        return {
            'region': self.settings.aws_region,
            'dynamodb_endpoint': self.settings.dynamodb_endpoint_url or "AWS Default",
            's3_endpoint': self.settings.s3_endpoint_url or "AWS Default"
        }
