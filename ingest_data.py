#!/usr/bin/env python3
"""
Cosmos DB Load Ingester
Continuously writes synthetic documents to Azure Cosmos DB (MongoDB API) until stopped
"""
import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path
from typing import Optional

# Add package to path
sys.path.insert(0, str(Path(__file__).parent))

from ingester import (
    CompositeObserver,
    ConfigManager,
    ConfigValidationError,
    DataType,
    IngestionObserver,
    LoggingObserver,
    ProgressObserver,
    StatsReporter,
    WorkloadStrategy,
    create_ingestion_engine,
)

logger = logging.getLogger(__name__)


def configure_logging(level: str):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(),
            logging.FileHandler('ingestion.log')
        ]
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Cosmos DB Load Ingester')
    parser.add_argument('--config', '-c', default=None,
                        help='Configuration file (.env, .yaml or .json)')
    parser.add_argument('--data-type', '-d', choices=[t.value for t in DataType],
                        help='Document domain to generate')
    parser.add_argument('--strategy', '-s', choices=[s.value for s in WorkloadStrategy],
                        help='Partition key workload strategy')
    parser.add_argument('--batch-size', '-b', type=int,
                        help='Documents written concurrently per batch (1-1000)')
    parser.add_argument('--document-size-kb', '-k', type=int,
                        help='Approximate size of each document in KB (1-2048)')
    parser.add_argument('--throughput', '-t', type=int,
                        help='RU/s to provision when the collection is created')
    parser.add_argument('--max-request-units', type=int,
                        help='Stop once the estimated RU consumption reaches this budget')
    parser.add_argument('--batches', '-n', type=int,
                        help='Stop after this many batches (default: run until interrupted)')
    parser.add_argument('--no-progress', action='store_true',
                        help='Log stats instead of showing a progress bar')
    return parser


async def run_ingestion(engine, config, observer: IngestionObserver,
                        cancel_event: asyncio.Event, max_batches: Optional[int] = None):
    """Run the engine while a reporter polls its live counters on the stats interval"""
    reporter = StatsReporter(engine.stats, observer, config.stats_interval_seconds)
    await reporter.start()
    try:
        return await engine.run(config, cancel_event, max_batches=max_batches)
    finally:
        await reporter.stop()


async def main() -> int:
    """Main function for load ingestion"""
    args = build_parser().parse_args()

    try:
        config = ConfigManager("INGEST").load_config(
            args.config,
            data_type=args.data_type,
            workload_strategy=args.strategy,
            batch_size=args.batch_size,
            document_size_kb=args.document_size_kb,
            throughput=args.throughput,
            max_request_units=args.max_request_units,
        )
    except ConfigValidationError as e:
        configure_logging("INFO")
        for error in e.errors:
            logger.error(f"❌ {error}")
        return 2
    except (FileNotFoundError, ValueError) as e:
        configure_logging("INFO")
        logger.error(f"❌ {e}")
        return 2

    configure_logging(config.log_level)

    observers = [LoggingObserver()] if args.no_progress else []
    progress = None if args.no_progress else ProgressObserver()
    if progress:
        observers.append(progress)
    observer = CompositeObserver(observers)
    engine = create_ingestion_engine(observer=observer)

    cancel_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, cancel_event.set)
        except NotImplementedError:
            signal.signal(sig, lambda *_: loop.call_soon_threadsafe(cancel_event.set))

    try:
        if not await engine.initialize(config):
            logger.error("Failed to initialize ingestion engine")
            return 1

        final = await run_ingestion(engine, config, observer, cancel_event, args.batches)
        if final is None:
            return 1

        logger.info("🎉 Ingestion completed!")
        logger.info("📊 Final Results:")
        logger.info(f"   • Documents attempted: {final.total_documents:,}")
        logger.info(f"   • Documents failed: {final.failed_documents:,}")
        logger.info(f"   • Data written: {final.total_data_size_kb:,} KB")
        logger.info(f"   • Average rate: {final.documents_per_second:,.0f} docs/s ({final.kb_per_second:,.0f} KB/s)")
        logger.info(f"   • Estimated RU consumed: {final.estimated_request_units:,}")
        logger.info(f"   • Backend: {engine.backend.get_performance_summary()}")
        return 0

    except Exception as e:
        logger.error(f"❌ Ingestion failed: {type(e).__name__}")
        return 1

    finally:
        if progress:
            progress.close()
        await engine.dispose()


def run():
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
