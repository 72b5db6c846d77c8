"""State history logging."""

from lightsync.logging.dynamo_logger import DynamoStateLogger

__all__ = ["DynamoStateLogger"]
