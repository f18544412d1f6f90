"""
DynamoDB implementation of SurveyRepositoryPort.
Read-only; survey responses are written by the intake process.
"""
import asyncio
from typing import Optional

from boto3.dynamodb.conditions import Key
from botocore.exceptions import BotoCoreError, ClientError

from survey_audio.adapters.mappers.audio_job_mapper import from_dynamodb_value
from survey_audio.config.settings import Settings
from survey_audio.core.exceptions import RepositoryError
from survey_audio.core.models.survey_response import SurveyResponse
from survey_audio.core.ports.survey_repository import SurveyRepositoryPort
from survey_audio.infrastructure.config.aws_config import AWSConfig
from survey_audio.infrastructure.databases.table_schemas import TableSchemas
from survey_audio.infrastructure.logging.log_decorators import log_operation, op_config


class DynamoDBSurveyRepository(SurveyRepositoryPort):

    def __init__(self, settings: Settings, aws_config: AWSConfig):
        self.table_name = settings.survey_responses_table_name
        self.table = aws_config.get_table(self.table_name)

    @log_operation("find_latest_survey_response", **op_config(result=False))
    async def find_latest(
        self,
        email: Optional[str] = None,
        transaction_id: Optional[str] = None
    ) -> Optional[SurveyResponse]:
        """
        Newest survey response by transaction id (preferred) or email.
        """
        if transaction_id:
            index_name, key_condition = TableSchemas.SURVEY_TRANSACTION_INDEX, Key('transaction_id').eq(transaction_id)
        elif email:
            index_name, key_condition = TableSchemas.SURVEY_EMAIL_INDEX, Key('email').eq(email)
        else:
            return None

        try:
            response = await asyncio.to_thread(
                self.table.query,
                IndexName=index_name,
                KeyConditionExpression=key_condition,
                ScanIndexForward=False,
                Limit=1
            )
        except ClientError as e:
            raise RepositoryError(
                f"Failed to query survey responses: {e.response['Error']['Message']}",
                details={"table": self.table_name, "index": index_name, "aws_error_code": e.response['Error']['Code']}
            )
        except BotoCoreError as e:
            raise RepositoryError(f"Failed to query survey responses: {str(e)}", details={"table": self.table_name})

        items = response.get('Items', [])
        if not items:
            return None
        return SurveyResponse.from_dict(from_dynamodb_value(items[0]))
