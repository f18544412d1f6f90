"""
DynamoDB table schema definitions for the survey audio pipeline.
"""
from typing import Dict, Any, List


class TableSchemas:
    """
    Centralized DynamoDB table schema definitions.

    Design principles:
    - survey_response_id is the job table's partition key, so the store
      itself guarantees one job record per survey response
    - Survey lookups go through GSIs sorted by created_at, newest first
    - Completed jobs are found per email through a sparse index on completed_at
    """

    SURVEY_TRANSACTION_INDEX = 'transaction_id-index'
    SURVEY_EMAIL_INDEX = 'email-index'
    JOB_EMAIL_COMPLETED_INDEX = 'email-completed_at-index'

    @staticmethod
    def _gsi(index_name: str, hash_key: str, range_key: str) -> Dict[str, Any]:
        return {
            'IndexName': index_name,
            'KeySchema': [
                {'AttributeName': hash_key, 'KeyType': 'HASH'},
                {'AttributeName': range_key, 'KeyType': 'RANGE'}
            ],
            'Projection': {'ProjectionType': 'ALL'}
        }

    @staticmethod
    def _tags(table_type: str) -> List[Dict[str, str]]:
        return [
            {'Key': 'Project', 'Value': 'SurveyAudio'},
            {'Key': 'TableType', 'Value': table_type}
        ]

    @classmethod
    def survey_responses_table_schema(cls, table_name: str) -> Dict[str, Any]:
        """
        Survey responses written by the intake process.

        Structure:
        - id (PK): survey response id
        - email, transaction_id, user_id
        - name, company, role: contact profile
        - survey_data: calibration answers plus a 'scores' map
        - created_at: ISO timestamp

        GSI Indexes:
        1. transaction_id-index: lookup by upstream transaction (preferred)
        2. email-index: lookup by contact email
        """
        return {
            'TableName': table_name,
            'KeySchema': [
                {'AttributeName': 'id', 'KeyType': 'HASH'}
            ],
            'AttributeDefinitions': [
                {'AttributeName': 'id', 'AttributeType': 'S'},
                {'AttributeName': 'email', 'AttributeType': 'S'},
                {'AttributeName': 'transaction_id', 'AttributeType': 'S'},
                {'AttributeName': 'created_at', 'AttributeType': 'S'}
            ],
            'GlobalSecondaryIndexes': [
                cls._gsi(cls.SURVEY_TRANSACTION_INDEX, 'transaction_id', 'created_at'),
                cls._gsi(cls.SURVEY_EMAIL_INDEX, 'email', 'created_at')
            ],
            'BillingMode': 'PAY_PER_REQUEST',
            'SSESpecification': {'Enabled': True},
            'Tags': cls._tags('SurveyResponses')
        }

    @classmethod
    def audio_jobs_table_schema(cls, table_name: str) -> Dict[str, Any]:
        """
        Audio job records, one per survey response.

        Structure:
        - survey_response_id (PK)
        - status: pending | processing | completed | failed
        - openai_prompt, script_generated, openai_* trace ids
        - audio_url, audio_path, audio_duration_seconds, elevenlabs_* trace ids
        - ghl_* synced values, crm_synced_at
        - error_message, created_at, updated_at, completed_at

        GSI Indexes:
        1. email-completed_at-index: sparse, only records that carry completed_at
        """
        return {
            'TableName': table_name,
            'KeySchema': [
                {'AttributeName': 'survey_response_id', 'KeyType': 'HASH'}
            ],
            'AttributeDefinitions': [
                {'AttributeName': 'survey_response_id', 'AttributeType': 'S'},
                {'AttributeName': 'email', 'AttributeType': 'S'},
                {'AttributeName': 'completed_at', 'AttributeType': 'S'}
            ],
            'GlobalSecondaryIndexes': [
                cls._gsi(cls.JOB_EMAIL_COMPLETED_INDEX, 'email', 'completed_at')
            ],
            'BillingMode': 'PAY_PER_REQUEST',
            'SSESpecification': {'Enabled': True},
            'Tags': cls._tags('AudioJobs')
        }

    @classmethod
    def get_all_schemas(cls, survey_table_name: str, jobs_table_name: str) -> Dict[str, Dict[str, Any]]:
        return {
            'survey_responses': cls.survey_responses_table_schema(survey_table_name),
            'audio_jobs': cls.audio_jobs_table_schema(jobs_table_name)
        }

    @classmethod
    def validate_schema(cls, schema: Dict[str, Any]) -> bool:
        """
        Validate that a schema has required DynamoDB fields and that every
        key attribute (table and GSI) is defined.
        """
        required_fields = ['TableName', 'KeySchema', 'AttributeDefinitions']
        if any(field not in schema for field in required_fields):
            return False

        if not schema['KeySchema']:
            return False

        key_attributes = {key['AttributeName'] for key in schema['KeySchema']}
        for gsi in schema.get('GlobalSecondaryIndexes', []):
            key_attributes.update(key['AttributeName'] for key in gsi['KeySchema'])

        defined_attributes = {attr['AttributeName'] for attr in schema['AttributeDefinitions']}
        return key_attributes.issubset(defined_attributes)
