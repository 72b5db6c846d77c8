"""Create the DynamoDB table for the light state history.

Run once to set up the table:
    uv run python scripts/create_dynamodb_table.py [--profile NAME]

Items are keyed by device_id and timestamp and expire through the ``ttl``
attribute written by DynamoStateLogger.
"""

import argparse
import os

import boto3
from botocore.exceptions import ClientError

from lightsync.logging.dynamo_logger import DEFAULT_REGION, DEFAULT_TABLE_NAME

TABLE_NAME = os.environ.get("DYNAMODB_TABLE_NAME", DEFAULT_TABLE_NAME)
REGION = os.environ.get("AWS_DEFAULT_REGION", DEFAULT_REGION)


def create_table(profile_name: str | None) -> None:
    session = boto3.Session(profile_name=profile_name, region_name=REGION)
    client = session.client("dynamodb")

    try:
        client.create_table(
            TableName=TABLE_NAME,
            KeySchema=[
                {"AttributeName": "device_id", "KeyType": "HASH"},
                {"AttributeName": "timestamp", "KeyType": "RANGE"},
            ],
            AttributeDefinitions=[
                {"AttributeName": "device_id", "AttributeType": "S"},
                {"AttributeName": "timestamp", "AttributeType": "S"},
            ],
            BillingMode="PAY_PER_REQUEST",
        )
        print(f"Table '{TABLE_NAME}' created. Waiting for it to become active...")

        client.get_waiter("table_exists").wait(TableName=TABLE_NAME)

        client.update_time_to_live(
            TableName=TABLE_NAME,
            TimeToLiveSpecification={"Enabled": True, "AttributeName": "ttl"},
        )
        print(f"TTL enabled, table '{TABLE_NAME}' is ready.")

    except ClientError as e:
        if e.response["Error"]["Code"] == "ResourceInUseException":
            print(f"Table '{TABLE_NAME}' already exists.")
        else:
            raise


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--profile", default=None, help="AWS profile to use")
    create_table(parser.parse_args().profile)
