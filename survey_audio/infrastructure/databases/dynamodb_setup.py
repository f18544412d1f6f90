"""
DynamoDB setup and management utilities.
Creates the pipeline tables when missing and reports their health.
"""
import time
from typing import Dict, Any

from botocore.exceptions import ClientError

from survey_audio.config.settings import Settings
from survey_audio.infrastructure.config.aws_config import AWSConfig
from survey_audio.infrastructure.logging.log_decorators import log_operation, op_config
from .table_schemas import TableSchemas


class DynamoDBSetup:
    """
    Manages DynamoDB table creation and health checks.
    """

    def __init__(self, settings: Settings, aws_config: AWSConfig):
        self.settings = settings
        self.aws_config = aws_config
        self.schemas = TableSchemas()

    @property
    def table_names(self) -> Dict[str, str]:
        return {
            'survey_responses': self.settings.survey_responses_table_name,
            'audio_jobs': self.settings.audio_jobs_table_name
        }

    @log_operation("create_all_tables", **op_config(args=False))
    def create_all_tables(self) -> Dict[str, Any]:
        """
        Create all required tables for the pipeline.

        Returns:
            Dict with per-table results and a summary
        """
        schemas = self.schemas.get_all_schemas(
            self.settings.survey_responses_table_name,
            self.settings.audio_jobs_table_name
        )
        results = {name: self.create_table(schema) for name, schema in schemas.items()}

        success_count = sum(1 for result in results.values() if result['success'])
        return {
            'results': results,
            'summary': {
                'total_tables': len(results),
                'successful_creations': success_count,
                'failed_creations': len(results) - success_count
            }
        }

    @log_operation("create_table", **op_config(args=False))
    def create_table(self, schema: Dict[str, Any]) -> Dict[str, Any]:
        table_name = schema['TableName']
        if not self.schemas.validate_schema(schema):
            raise ValueError(f"Invalid schema for table '{table_name}'")

        try:
            if self.table_exists(table_name):
                return {'success': True, 'table_name': table_name, 'action': 'skipped', 'reason': 'table_exists'}

            table = self.aws_config.dynamodb_resource.create_table(**schema)
            self.wait_for_table_creation(table)
            return {
                'success': True,
                'table_name': table_name,
                'action': 'created',
                'gsi_count': len(schema.get('GlobalSecondaryIndexes', []))
            }
        except ClientError as e:
            error = e.response['Error']
            raise RuntimeError(f"Failed to create table '{table_name}': {error['Code']} - {error['Message']}")

    def table_exists(self, table_name: str) -> bool:
        try:
            self.aws_config.dynamodb_client.describe_table(TableName=table_name)
            return True
        except ClientError as e:
            if e.response['Error']['Code'] == 'ResourceNotFoundException':
                return False
            raise

    def wait_for_table_creation(self, table, max_wait_time: int = 300, poll_seconds: int = 5) -> Dict[str, Any]:
        """
        Wait for a table and all of its GSIs to become active.

        Raises:
            TimeoutError: If the table is not active within max_wait_time
        """
        start_time = time.time()
        while time.time() - start_time < max_wait_time:
            try:
                table.reload()
                indexes = table.global_secondary_indexes or []
                if table.table_status == 'ACTIVE' and all(index['IndexStatus'] == 'ACTIVE' for index in indexes):
                    return {
                        'success': True,
                        'table_name': table.name,
                        'total_wait_time_seconds': round(time.time() - start_time, 2)
                    }
            except ClientError:
                # Table still being created
                pass
            time.sleep(poll_seconds)

        raise TimeoutError(f"Table creation timed out after {max_wait_time} seconds")

    def health_check(self) -> Dict[str, Any]:
        """
        Check connectivity and the status of every pipeline table.

        Returns:
            Dict with dynamodb_connection flag and per-table status
        """
        result: Dict[str, Any] = {'dynamodb_connection': False, 'tables': {}}
        client = self.aws_config.dynamodb_client
        all_active = True
        for name, table_name in self.table_names.items():
            try:
                description = client.describe_table(TableName=table_name)['Table']
                status = description['TableStatus']
                result['tables'][name] = {'table_name': table_name, 'status': status}
                all_active = all_active and status == 'ACTIVE'
            except ClientError as e:
                result['tables'][name] = {'table_name': table_name, 'status': 'unavailable', 'error': e.response['Error']['Code']}
                all_active = False
        result['dynamodb_connection'] = all_active
        return result
