"""
DynamoDB implementation of JobRepositoryPort.

The table's partition key is survey_response_id, and claim() is a single
conditional PutItem, so two invocations for the same survey response can
never both hold the job.
"""
import asyncio
from datetime import datetime, timedelta, timezone
from typing import Dict, Any, Optional

from boto3.dynamodb.conditions import Key, Attr
from botocore.exceptions import BotoCoreError, ClientError

from survey_audio.adapters.mappers.audio_job_mapper import AudioJobMapper, to_dynamodb_value
from survey_audio.config.settings import Settings
from survey_audio.core.exceptions import RepositoryError
from survey_audio.core.models.audio_job import AudioJob, JobStatus, utc_now_iso
from survey_audio.core.ports.job_repository import JobRepositoryPort
from survey_audio.infrastructure.config.aws_config import AWSConfig
from survey_audio.infrastructure.databases.table_schemas import TableSchemas
from survey_audio.infrastructure.logging.log_decorators import log_operation, op_config


class DynamoDBJobRepository(JobRepositoryPort):
    """
    DynamoDB implementation of JobRepositoryPort.
    """

    def __init__(self, settings: Settings, aws_config: AWSConfig):
        self.table_name = settings.audio_jobs_table_name
        self.table = aws_config.get_table(self.table_name)

    @log_operation("get_audio_job", **op_config(level="DEBUG", result=False))
    async def get(self, survey_response_id: str) -> Optional[AudioJob]:
        try:
            response = await asyncio.to_thread(
                self.table.get_item,
                Key={'survey_response_id': survey_response_id},
                ConsistentRead=True
            )
        except ClientError as e:
            raise RepositoryError(
                f"Failed to get audio job: {e.response['Error']['Message']}",
                details={"table": self.table_name, "aws_error_code": e.response['Error']['Code']}
            )
        except BotoCoreError as e:
            raise RepositoryError(f"Failed to get audio job: {str(e)}", details={"table": self.table_name})

        item = response.get('Item')
        return AudioJobMapper.from_item(item) if item else None

    @log_operation("claim_audio_job", **op_config(result=True))
    async def claim(self, job: AudioJob, force: bool, lease_seconds: int) -> bool:
        """
        Conditional upsert with status=processing.

        Returns False when the condition fails, i.e. another run holds a
        live lease or the record is completed and force is not set.
        """
        item = AudioJobMapper.to_item(job)
        item['status'] = JobStatus.PROCESSING.value
        stale_before = (datetime.now(timezone.utc) - timedelta(seconds=lease_seconds)).isoformat()

        condition = (
            "attribute_not_exists(survey_response_id)"
            " OR #status IN (:pending, :failed)"
            " OR (#status = :processing AND updated_at < :stale_before)"
        )
        values = {
            ':pending': JobStatus.PENDING.value,
            ':failed': JobStatus.FAILED.value,
            ':processing': JobStatus.PROCESSING.value,
            ':stale_before': stale_before
        }
        if force:
            condition += " OR #status = :completed"
            values[':completed'] = JobStatus.COMPLETED.value

        try:
            await asyncio.to_thread(
                self.table.put_item,
                Item=item,
                ConditionExpression=condition,
                ExpressionAttributeNames={'#status': 'status'},
                ExpressionAttributeValues=values
            )
        except ClientError as e:
            if e.response['Error']['Code'] == 'ConditionalCheckFailedException':
                return False
            raise RepositoryError(
                f"Failed to claim audio job: {e.response['Error']['Message']}",
                details={"table": self.table_name, "aws_error_code": e.response['Error']['Code']}
            )
        except BotoCoreError as e:
            raise RepositoryError(f"Failed to claim audio job: {str(e)}", details={"table": self.table_name})
        return True

    @log_operation("update_audio_job", **op_config(result=False, args=False))
    async def update(self, survey_response_id: str, fields: Dict[str, Any]) -> None:
        """
        SET the given attributes, REMOVE the ones given as None.
        """
        fields = dict(fields, updated_at=utc_now_iso())

        set_parts, remove_parts = [], []
        names: Dict[str, str] = {}
        values: Dict[str, Any] = {}
        for index, (name, value) in enumerate(fields.items()):
            placeholder = f"#f{index}"
            names[placeholder] = name
            if value is None:
                remove_parts.append(placeholder)
            else:
                values[f":v{index}"] = to_dynamodb_value(value)
                set_parts.append(f"{placeholder} = :v{index}")

        expression = "SET " + ", ".join(set_parts)
        if remove_parts:
            expression += " REMOVE " + ", ".join(remove_parts)

        try:
            await asyncio.to_thread(
                self.table.update_item,
                Key={'survey_response_id': survey_response_id},
                UpdateExpression=expression,
                ConditionExpression="attribute_exists(survey_response_id)",
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values
            )
        except ClientError as e:
            error_code = e.response['Error']['Code']
            if error_code == 'ConditionalCheckFailedException':
                raise RepositoryError(
                    f"Audio job {survey_response_id} does not exist",
                    error_code="JOB_NOT_FOUND"
                )
            raise RepositoryError(
                f"Failed to update audio job: {e.response['Error']['Message']}",
                details={"table": self.table_name, "aws_error_code": error_code}
            )
        except BotoCoreError as e:
            raise RepositoryError(f"Failed to update audio job: {str(e)}", details={"table": self.table_name})

    async def find_latest_completed_by_email(self, email: str) -> Optional[AudioJob]:
        try:
            response = await asyncio.to_thread(
                self.table.query,
                IndexName=TableSchemas.JOB_EMAIL_COMPLETED_INDEX,
                KeyConditionExpression=Key('email').eq(email),
                FilterExpression=Attr('status').eq(JobStatus.COMPLETED.value),
                ScanIndexForward=False
            )
        except ClientError as e:
            raise RepositoryError(
                f"Failed to query audio jobs by email: {e.response['Error']['Message']}",
                details={"table": self.table_name, "aws_error_code": e.response['Error']['Code']}
            )
        except BotoCoreError as e:
            raise RepositoryError(f"Failed to query audio jobs by email: {str(e)}", details={"table": self.table_name})

        items = response.get('Items', [])
        return AudioJobMapper.from_item(items[0]) if items else None
