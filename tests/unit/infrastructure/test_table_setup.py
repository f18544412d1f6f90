"""
Unit tests for table schemas, table setup and infrastructure health checks.
"""
from unittest.mock import Mock

import pytest
from botocore.exceptions import ClientError

from survey_audio.infrastructure.databases.dynamodb_setup import DynamoDBSetup
from survey_audio.infrastructure.databases.table_schemas import TableSchemas
from survey_audio.infrastructure.services.health_checks import HealthCheckService


def _not_found() -> ClientError:
    return ClientError({"Error": {"Code": "ResourceNotFoundException", "Message": "missing"}}, "DescribeTable")


class TestTableSchemas:

    @pytest.mark.unit
    def test_all_schemas_are_valid(self):
        schemas = TableSchemas.get_all_schemas("surveys", "jobs")

        assert set(schemas) == {"survey_responses", "audio_jobs"}
        assert all(TableSchemas.validate_schema(schema) for schema in schemas.values())
        assert schemas["audio_jobs"]["KeySchema"] == [{"AttributeName": "survey_response_id", "KeyType": "HASH"}]

    @pytest.mark.unit
    def test_lookup_indexes(self):
        surveys = TableSchemas.survey_responses_table_schema("surveys")
        jobs = TableSchemas.audio_jobs_table_schema("jobs")

        assert {gsi["IndexName"] for gsi in surveys["GlobalSecondaryIndexes"]} == {
            TableSchemas.SURVEY_TRANSACTION_INDEX, TableSchemas.SURVEY_EMAIL_INDEX
        }
        assert jobs["GlobalSecondaryIndexes"][0]["IndexName"] == TableSchemas.JOB_EMAIL_COMPLETED_INDEX

    @pytest.mark.unit
    def test_undefined_key_attribute_is_invalid(self):
        schema = TableSchemas.audio_jobs_table_schema("jobs")
        schema["AttributeDefinitions"] = [
            attr for attr in schema["AttributeDefinitions"] if attr["AttributeName"] != "completed_at"
        ]
        assert TableSchemas.validate_schema(schema) is False
        assert TableSchemas.validate_schema({"TableName": "x"}) is False


@pytest.fixture
def aws_config() -> Mock:
    return Mock()


@pytest.fixture
def dynamodb_setup(test_settings, aws_config) -> DynamoDBSetup:
    return DynamoDBSetup(test_settings, aws_config)


class TestDynamoDBSetup:

    @pytest.mark.unit
    def test_existing_tables_are_skipped(self, dynamodb_setup, aws_config):
        aws_config.dynamodb_client.describe_table.return_value = {"Table": {"TableStatus": "ACTIVE"}}

        outcome = dynamodb_setup.create_all_tables()

        assert outcome["summary"] == {"total_tables": 2, "successful_creations": 2, "failed_creations": 0}
        assert {r["action"] for r in outcome["results"].values()} == {"skipped"}
        aws_config.dynamodb_resource.create_table.assert_not_called()

    @pytest.mark.unit
    def test_missing_table_is_created(self, dynamodb_setup, aws_config):
        aws_config.dynamodb_client.describe_table.side_effect = _not_found()
        table = Mock(table_status="ACTIVE", global_secondary_indexes=[{"IndexStatus": "ACTIVE"}])
        table.name = "jobs"
        aws_config.dynamodb_resource.create_table.return_value = table

        result = dynamodb_setup.create_table(TableSchemas.audio_jobs_table_schema("jobs"))

        assert result["action"] == "created"
        assert result["gsi_count"] == 1

    @pytest.mark.unit
    def test_health_check_reports_missing_tables(self, dynamodb_setup, aws_config):
        aws_config.dynamodb_client.describe_table.side_effect = [
            {"Table": {"TableStatus": "ACTIVE"}},
            _not_found()
        ]

        health = dynamodb_setup.health_check()

        assert health["dynamodb_connection"] is False
        assert health["tables"]["survey_responses"]["status"] == "ACTIVE"
        assert health["tables"]["audio_jobs"]["status"] == "unavailable"


class TestHealthCheckService:

    @pytest.mark.unit
    def test_all_healthy(self, test_settings, aws_config):
        setup = Mock()
        setup.health_check.return_value = {"dynamodb_connection": True, "tables": {}}
        service = HealthCheckService(test_settings, aws_config, setup)

        results = service.check_all_services()

        assert results["dynamodb"]["status"] == "healthy"
        assert results["s3"]["status"] == "healthy"
        assert results["s3"]["bucket"] == "test-audio-bucket"
        assert service.unhealthy_services(results) == []

    @pytest.mark.unit
    def test_bucket_unreachable(self, test_settings, aws_config):
        setup = Mock()
        setup.health_check.return_value = {"dynamodb_connection": True, "tables": {}}
        aws_config.s3_client.head_bucket.side_effect = ClientError(
            {"Error": {"Code": "404", "Message": "Not Found"}}, "HeadBucket"
        )
        service = HealthCheckService(test_settings, aws_config, setup)

        results = service.check_all_services()

        assert results["s3"]["status"] == "unhealthy"
        assert service.unhealthy_services(results) == ["s3"]
