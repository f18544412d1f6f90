"""
S3 implementation of ArtifactStoragePort.

Objects live under '{user_id or anonymous}/{timestamp_ms}-{email fragment}{ext}'
and are written with If-None-Match so an existing object is never replaced.
"""
import asyncio
import re
import time
from typing import Optional
from urllib.parse import quote

from botocore.exceptions import BotoCoreError, ClientError

from survey_audio.config.settings import Settings
from survey_audio.core.exceptions import StorageError
from survey_audio.core.models.generation import StoredArtifact
from survey_audio.core.ports.artifact_storage import ArtifactStoragePort
from survey_audio.infrastructure.config.aws_config import AWSConfig
from survey_audio.infrastructure.logging.log_config import get_logger
from survey_audio.infrastructure.logging.log_decorators import log_operation, op_config


logger = get_logger("S3ArtifactStorage")

_EMAIL_UNSAFE = re.compile(r'[^a-z0-9]')


def sanitize_email_fragment(email: str) -> str:
    return _EMAIL_UNSAFE.sub('-', (email or '').lower())


class S3ArtifactStorage(ArtifactStoragePort):
    """
    Audio artifact store on S3.
    """

    def __init__(self, settings: Settings, aws_config: AWSConfig):
        self.settings = settings
        self.aws_config = aws_config
        self.bucket_name = settings.audio_bucket_name

    @property
    def s3_client(self):
        return self.aws_config.s3_client

    def build_object_key(self, user_id: Optional[str], email: str, timestamp_ms: Optional[int] = None) -> str:
        """
        Per-user, timestamped key. The millisecond timestamp keeps keys unique.

        Example:
            build_object_key(None, "Ana.Silva@Example.com", 1718000000000)
            -> 'anonymous/1718000000000-ana-silva-example-com.ogg'
        """
        owner = user_id or "anonymous"
        timestamp_ms = timestamp_ms if timestamp_ms is not None else int(time.time() * 1000)
        return f"{owner}/{timestamp_ms}-{sanitize_email_fragment(email)}{self.settings.audio_file_extension}"

    def public_url(self, object_key: str) -> str:
        return self.settings.get_public_audio_url(quote(object_key))

    async def check_health(self) -> bool:
        try:
            await asyncio.to_thread(self.s3_client.head_bucket, Bucket=self.bucket_name)
        except ClientError as e:
            logger.error("Audio bucket health check failed", extra={"extra_fields": {
                "bucket": self.bucket_name,
                "aws_error_code": e.response['Error']['Code']
            }})
            return False
        except BotoCoreError as e:
            logger.error("Audio bucket unreachable", extra={"extra_fields": {
                "bucket": self.bucket_name,
                "error": str(e)
            }})
            return False
        return True

    @log_operation("store_audio_artifact", **op_config(args=True))
    async def store_audio(
        self,
        audio: bytes,
        user_id: Optional[str],
        email: str,
        content_type: str
    ) -> StoredArtifact:
        if not audio:
            raise StorageError("Audio payload is empty", error_code="STORAGE_EMPTY_PAYLOAD")

        object_key = self.build_object_key(user_id, email)
        try:
            await asyncio.to_thread(
                self.s3_client.put_object,
                Bucket=self.bucket_name,
                Key=object_key,
                Body=audio,
                ContentType=content_type,
                CacheControl="public, max-age=31536000, immutable",
                IfNoneMatch="*"
            )
        except ClientError as e:
            error_code = e.response['Error']['Code']
            if error_code in ('PreconditionFailed', 'ConditionalRequestConflict'):
                raise StorageError(
                    f"Audio object already exists: {object_key}",
                    error_code="STORAGE_OBJECT_EXISTS",
                    details={"stage": "store_artifact", "path": object_key}
                )
            raise StorageError(
                f"Failed to upload audio: {e.response['Error']['Message']}",
                error_code="STORAGE_UPLOAD_FAILED",
                details={
                    "stage": "store_artifact",
                    "path": object_key,
                    "aws_error_code": error_code,
                    "status_code": e.response.get('ResponseMetadata', {}).get('HTTPStatusCode')
                }
            )
        except BotoCoreError as e:
            raise StorageError(
                f"Failed to upload audio: {str(e)}",
                error_code="STORAGE_UNREACHABLE",
                details={"stage": "store_artifact", "path": object_key}
            )

        return StoredArtifact(
            path=object_key,
            public_url=self.public_url(object_key),
            size_bytes=len(audio),
            content_type=content_type
        )

    @log_operation("read_audio_artifact", **op_config(args=True, result=False))
    async def read_audio(self, path: str) -> bytes:
        if not path:
            raise StorageError("Audio path cannot be empty", error_code="STORAGE_INVALID_PATH")
        try:
            response = await asyncio.to_thread(self.s3_client.get_object, Bucket=self.bucket_name, Key=path)
            return await asyncio.to_thread(response['Body'].read)
        except ClientError as e:
            error_code = e.response['Error']['Code']
            if error_code in ('NoSuchKey', '404'):
                raise StorageError(f"Audio object not found: {path}", error_code="STORAGE_OBJECT_NOT_FOUND")
            raise StorageError(
                f"Failed to download audio: {e.response['Error']['Message']}",
                error_code="STORAGE_DOWNLOAD_FAILED",
                details={"path": path, "aws_error_code": error_code}
            )
        except BotoCoreError as e:
            raise StorageError(f"Failed to download audio: {str(e)}", error_code="STORAGE_UNREACHABLE")
