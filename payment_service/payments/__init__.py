"""transaction-service: Kafka-fed transaction ingestion and summary API."""

__version__ = "0.1.0"
