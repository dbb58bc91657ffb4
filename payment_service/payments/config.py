"""Environment-driven settings for transaction-service."""

import os
from pathlib import Path

SERVICE_NAME = "transaction-service"

KAFKA_BOOTSTRAP_SERVERS = os.environ.get("KAFKA_BOOTSTRAP_SERVERS")
KAFKA_TOPIC = os.environ.get("KAFKA_TOPIC", "transactions-topic")
# Distinct from any other consumer group reading the same topic
KAFKA_GROUP_ID = os.environ.get("KAFKA_GROUP_ID", "tx-persist-group")
KAFKA_DELIVERY_TIMEOUT_SECONDS = float(os.environ.get("KAFKA_DELIVERY_TIMEOUT_SECONDS", "10"))
KAFKA_POLL_TIMEOUT_SECONDS = float(os.environ.get("KAFKA_POLL_TIMEOUT_SECONDS", "1.0"))

DATABASE_PATH = Path(os.environ.get("DATABASE_PATH", str(Path(__file__).parent.parent / "transactions.db")))

SUMMARY_CURRENCY = os.environ.get("SUMMARY_CURRENCY", "USD")


def db_reset_on_start() -> bool:
    return os.environ.get("DB_RESET_ON_START", "false").lower() == "true"
