"""Tests for DynamoStateLogger using moto for in-memory DynamoDB."""

from decimal import Decimal

import boto3
import pytest
from moto import mock_aws
from boto3.dynamodb.conditions import Key

from lightsync.logging import DynamoStateLogger

TABLE_NAME = "smarthome-light-state-log"
REGION = "eu-central-1"
DEVICE_ID = "desk-lamp-test"

COLOR = {"spectrumHSV": {"hue": 120.5, "saturation": 0.5, "value": 1}}


def _create_table(dynamodb):
    """Create the DynamoDB table used by the logger."""
    dynamodb.create_table(
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


@pytest.fixture
def aws_env(monkeypatch):
    """Set env vars so the logger finds the right table and region."""
    monkeypatch.setenv("DYNAMODB_TABLE_NAME", TABLE_NAME)
    monkeypatch.setenv("AWS_DEFAULT_REGION", REGION)


@pytest.fixture
def dynamodb_table(aws_env):
    """Provide a moto-backed DynamoDB table and a logger writing to it."""
    with mock_aws():
        session = boto3.Session(region_name=REGION)
        dynamodb = session.resource("dynamodb")
        _create_table(dynamodb)
        table = dynamodb.Table(TABLE_NAME)

        logger = DynamoStateLogger()
        logger._table = table

        yield logger, table


def _items(table):
    resp = table.query(KeyConditionExpression=Key("device_id").eq(DEVICE_ID))
    return resp["Items"]


@pytest.mark.asyncio
async def test_log_state_change_writes_item(dynamodb_table):
    logger, table = dynamodb_table

    await logger.log_state_change(DEVICE_ID, "local", {"on": True})

    assert len(_items(table)) == 1


@pytest.mark.asyncio
async def test_full_snapshot_fields(dynamodb_table):
    logger, table = dynamodb_table

    await logger.log_state_change(
        DEVICE_ID, "remote", {"on": True, "brightness": 50, "color": COLOR}
    )

    item = _items(table)[0]
    assert item["device_id"] == DEVICE_ID
    assert item["origin"] == "remote"
    assert item["is_on"] is True
    assert item["brightness"] == 50
    assert item["hue"] == Decimal("120.5")
    assert item["saturation"] == Decimal("0.5")
    assert item["value"] == 1
    assert "timestamp" in item
    assert "ttl" in item


@pytest.mark.asyncio
async def test_unsupported_fields_are_omitted(dynamodb_table):
    logger, table = dynamodb_table

    await logger.log_state_change(DEVICE_ID, "local", {"on": False})

    item = _items(table)[0]
    assert item["is_on"] is False
    assert "brightness" not in item
    assert "hue" not in item


@pytest.mark.asyncio
async def test_log_multiple_snapshots_queryable_by_time(dynamodb_table):
    logger, table = dynamodb_table

    await logger.log_state_change(DEVICE_ID, "local", {"on": True, "brightness": 10})
    await logger.log_state_change(DEVICE_ID, "remote", {"on": True, "brightness": 20})
    await logger.log_state_change(DEVICE_ID, "local", {"on": False, "brightness": 20})

    resp = table.query(
        KeyConditionExpression=(
            Key("device_id").eq(DEVICE_ID) & Key("timestamp").gte("2000-01-01")
        )
    )
    assert resp["Count"] == 3

    # Items come back in ascending timestamp order
    origins = [item["origin"] for item in resp["Items"]]
    assert origins == ["local", "remote", "local"]


@pytest.mark.asyncio
async def test_graceful_degradation_no_credentials():
    """When boto3 session creation fails, the logger disables itself instead of raising."""
    from unittest.mock import patch

    logger = DynamoStateLogger()
    with patch("lightsync.logging.dynamo_logger.boto3.Session", side_effect=Exception("no credentials")):
        await logger.log_state_change(DEVICE_ID, "local", {"on": True})
    assert logger._disabled is True


@pytest.mark.asyncio
async def test_graceful_degradation_no_table(aws_env):
    """With moto active but no table created, the logger disables itself."""
    with mock_aws():
        session = boto3.Session(region_name=REGION)
        dynamodb = session.resource("dynamodb")
        logger = DynamoStateLogger()
        logger._table = dynamodb.Table("nonexistent-table")

        await logger.log_state_change(DEVICE_ID, "local", {"on": True})
        assert logger._disabled is True


@pytest.mark.asyncio
async def test_disabled_flag_prevents_retries(dynamodb_table):
    logger, table = dynamodb_table

    logger._disabled = True
    await logger.log_state_change(DEVICE_ID, "local", {"on": True})

    assert _items(table) == []
