import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse

from payments import __version__, config, telemetry
from payments.database import SqliteTransactionStore, init_db
from payments.errors import InvalidTransaction
from payments.observability import init_observability, get_logger, shutdown_tracing
from payments.routes import health_router, transactions_router

# Bootstrap logging + tracing + service-info in one call
init_observability(config.SERVICE_NAME, __version__)

logger = get_logger(config.SERVICE_NAME)


def _start_kafka(app: FastAPI, store: SqliteTransactionStore) -> None:
    from payments.consumer import TransactionConsumer, create_consumer
    from payments.gateway import SubmissionGateway, create_producer
    from payments.pipeline import IngestionPipeline

    producer = create_producer(config.KAFKA_BOOTSTRAP_SERVERS)
    app.state.producer = producer
    app.state.gateway = SubmissionGateway(producer, submitted=telemetry.TRANSACTIONS_SUBMITTED)

    sink = telemetry.PrometheusTelemetry()
    pipeline = IngestionPipeline(store, sink, duration=telemetry.INGEST_DURATION)
    app.state.consumer = TransactionConsumer(
        create_consumer(config.KAFKA_BOOTSTRAP_SERVERS, config.KAFKA_GROUP_ID, config.KAFKA_TOPIC),
        pipeline,
        on_undecodable=sink.increment_failure,
        consumed=telemetry.MESSAGES_CONSUMED,
    )
    app.state.consumer.start()


@asynccontextmanager
async def lifespan(app: FastAPI):
    await asyncio.to_thread(init_db)
    logger.info("Database initialized")

    store = SqliteTransactionStore(save_duration=telemetry.SAVE_DURATION)
    app.state.store = store

    if config.KAFKA_BOOTSTRAP_SERVERS:
        _start_kafka(app, store)
        logger.info("Kafka producer and consumer started")
    else:
        logger.warning("KAFKA_BOOTSTRAP_SERVERS not set; submissions will be refused")

    yield

    consumer = getattr(app.state, "consumer", None)
    if consumer is not None:
        logger.info("Kafka consumer stopping...")
        await consumer.stop()

    producer = getattr(app.state, "producer", None)
    if producer is not None:
        await asyncio.to_thread(producer.flush, config.KAFKA_DELIVERY_TIMEOUT_SECONDS)

    # Flush remaining traces before shutdown
    shutdown_tracing()


app = FastAPI(
    title="Transaction Service",
    version=__version__,
    lifespan=lifespan,
)

app.include_router(transactions_router)
app.include_router(health_router)


@app.exception_handler(InvalidTransaction)
async def invalid_transaction_handler(request: Request, exc: InvalidTransaction):
    return PlainTextResponse(str(exc), status_code=400)


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logging.getLogger("errors").error(
        "Unhandled error on %s %s: %s", request.method, request.url.path, exc, exc_info=exc
    )
    return PlainTextResponse(f"An unexpected error occurred: {exc}", status_code=500)


telemetry.init(app)
