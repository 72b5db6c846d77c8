"""DynamoDB history of canonical light states."""

import logging
import os
from datetime import datetime, timezone, timedelta
from decimal import Decimal
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

logger = logging.getLogger(__name__)

DEFAULT_TABLE_NAME = "smarthome-light-state-log"
DEFAULT_REGION = "eu-central-1"
TTL_DAYS = 30


def _decimal(value: Any) -> Decimal:
    return Decimal(str(value))


class DynamoStateLogger:
    """Fire-and-forget logger that writes light state snapshots to DynamoDB.

    Lazy-initializes the boto3 Table resource on first write.
    After any connection/table failure, sets ``_disabled`` to avoid retrying.
    """

    def __init__(self, profile_name: str | None = None) -> None:
        self._profile_name = profile_name
        self._table = None
        self._disabled = False

    def _get_table(self):
        """Lazily create and return the DynamoDB Table resource."""
        if self._table is not None:
            return self._table

        table_name = os.environ.get("DYNAMODB_TABLE_NAME", DEFAULT_TABLE_NAME)
        region = os.environ.get("AWS_DEFAULT_REGION", DEFAULT_REGION)

        session_kwargs = {"region_name": region}
        if self._profile_name:
            session_kwargs["profile_name"] = self._profile_name

        session = boto3.Session(**session_kwargs)
        dynamodb = session.resource("dynamodb")
        self._table = dynamodb.Table(table_name)
        return self._table

    async def log_state_change(
        self, device_id: str, origin: str, state: dict[str, Any]
    ) -> None:
        """Log one light state snapshot to DynamoDB.

        This is fire-and-forget: failures are logged as warnings and never
        propagate to the caller.

        Args:
            device_id: Identifier for the light (e.g. ``smart-light-default``).
            origin: ``local`` for inbound commands, ``remote`` for shadow updates.
            state: Snapshot in wire form: ``on``, optional ``brightness`` and
                optional ``color.spectrumHSV``.
        """
        if self._disabled:
            return

        try:
            table = self._get_table()

            now = datetime.now(timezone.utc)

            item = {
                "device_id": device_id,
                "timestamp": now.isoformat(timespec="microseconds"),
                "origin": origin,
                "is_on": bool(state.get("on", False)),
                "ttl": int((now + timedelta(days=TTL_DAYS)).timestamp()),
            }
            if "brightness" in state:
                item["brightness"] = _decimal(state["brightness"])

            hsv = state.get("color", {}).get("spectrumHSV")
            if hsv:
                item["hue"] = _decimal(hsv["hue"])
                item["saturation"] = _decimal(hsv["saturation"])
                item["value"] = _decimal(hsv["value"])

            table.put_item(Item=item)
        except (BotoCoreError, ClientError, Exception) as exc:
            logger.warning("DynamoDB logging failed, disabling logger: %s", exc)
            self._disabled = True
