#!/usr/bin/env python3
"""
Database setup script for the survey audio pipeline.
Creates the survey responses and audio jobs tables and reports their status.
"""
import argparse
import sys

from survey_audio.config.settings import get_settings
from survey_audio.infrastructure.config.aws_config import AWSConfig
from survey_audio.infrastructure.databases.dynamodb_setup import DynamoDBSetup


def show_header(settings):
    """Display setup header with environment info."""
    print("Survey Audio - Database Setup")
    print("=" * 50)
    print(f"Environment: {settings.environment}")
    print(f"DynamoDB Endpoint: {settings.dynamodb_endpoint_url or 'AWS Default'}")
    print(f"Region: {settings.aws_region}")
    print(f"Survey Responses Table: {settings.survey_responses_table_name}")
    print(f"Audio Jobs Table: {settings.audio_jobs_table_name}")
    print()


def show_status(dynamodb_setup: DynamoDBSetup) -> bool:
    """
    Print per-table status.

    Returns:
        bool: True if every table is ACTIVE
    """
    health = dynamodb_setup.health_check()
    for name, info in health['tables'].items():
        marker = "✓" if info['status'] == 'ACTIVE' else "✗"
        print(f"  {marker} {name} ({info['table_name']}): {info['status']}")
    return health['dynamodb_connection']


def create_tables(dynamodb_setup: DynamoDBSetup) -> bool:
    print("Creating tables...")
    outcome = dynamodb_setup.create_all_tables()

    for name, result in outcome['results'].items():
        print(f"  {result['action'].upper()}: {name}")

    summary = outcome['summary']
    print()
    print(f"Summary: {summary['successful_creations']}/{summary['total_tables']} tables ready")
    return summary['failed_creations'] == 0


def main() -> bool:
    parser = argparse.ArgumentParser(description="Survey Audio Database Setup")
    parser.add_argument(
        "--status",
        action="store_true",
        help="Show current table status without creating anything"
    )
    args = parser.parse_args()

    settings = get_settings()
    dynamodb_setup = DynamoDBSetup(settings, AWSConfig(settings))
    show_header(settings)

    if args.status:
        return show_status(dynamodb_setup)

    if not create_tables(dynamodb_setup):
        print("Table creation failed. Check errors above.")
        return False

    print()
    print("Final verification...")
    if not show_status(dynamodb_setup):
        print("Some tables are not ready yet.")
        return False

    print()
    print("Database setup completed successfully!")
    return True


if __name__ == "__main__":
    try:
        sys.exit(0 if main() else 1)
    except KeyboardInterrupt:
        print("\nSetup cancelled by user")
        sys.exit(1)
    except Exception as e:
        print(f"\nSetup failed with error: {str(e)}")
        sys.exit(1)
