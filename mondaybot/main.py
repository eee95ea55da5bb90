"""Main entry point for MondayBot."""

import argparse
import asyncio
import logging
import sys

from .bot import Bot
from .config import Config, load_config
from .eligibility import EligibilityFilter
from .formatting import MessageFormatter
from .services import (
    CommandService,
    MappingStore,
    MondayService,
    ThreadResolver,
    WebhookHandler,
    open_database,
)
from .services.mapping_snapshot import (
    export_mappings,
    import_records,
    load_snapshot,
    load_taskbot_state,
)
from .webhook_server import create_webhook_app


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the application."""
    level = logging.DEBUG if verbose else logging.INFO

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
    )

    # Reduce noise from libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("discord").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


async def run_bot(args, logger, config: Config) -> int:
    """Run the webhook server, plus the Discord gateway in combined mode."""
    import uvicorn

    logger.info("Opening mapping database at %s", config.bot.database_path)
    db = await open_database(config.bot.database_path)
    store = MappingStore(db)

    formatter = MessageFormatter(config.sync)
    monday = MondayService(config.monday, timeout=config.bot.request_timeout)
    if not monday.configured:
        logger.warning("Monday API token not configured; item lookups will fail open")

    bot = Bot(config, store, CommandService(monday, formatter))
    resolver = ThreadResolver(store, bot.discord, formatter, timeout=config.bot.request_timeout)
    webhook_handler = WebhookHandler(
        monday=monday,
        eligibility=EligibilityFilter(config.sync.eligibility_rules, fail_open=config.sync.fail_open),
        resolver=resolver,
        formatter=formatter,
        sink=bot.discord,
        timeout=config.bot.request_timeout,
    )

    app = create_webhook_app(config, webhook_handler, store, bot.is_online)
    server = uvicorn.Server(
        uvicorn.Config(
            app,
            host=config.webhook.host,
            port=config.webhook.port,
            log_level="info" if args.verbose else "warning",
        )
    )
    logger.info("Webhook URL: http://%s:%d/webhook/monday", config.webhook.host, config.webhook.port)

    try:
        if args.mode == "webhook":
            await bot.login()
            await server.serve()
            return 0

        # Combined mode: gateway for mentions + webhook server
        bot_task = asyncio.create_task(bot.start())
        webhook_task = asyncio.create_task(server.serve())

        done, pending = await asyncio.wait(
            [bot_task, webhook_task],
            return_when=asyncio.FIRST_COMPLETED,
        )

        for task in pending:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        for task in done:
            try:
                task.result()
            except Exception as e:
                logger.exception("Task failed: %s", e)
                return 1
        return 0
    finally:
        logger.info("Shutting down...")
        await bot.close()
        await db.close()


async def run_maintenance(args, logger, config: Config) -> int:
    """Export, import or migrate mapping snapshots."""
    db = await open_database(config.bot.database_path)
    store = MappingStore(db)
    try:
        if args.mode == "export":
            count = await export_mappings(store, args.path)
            logger.info("Wrote %d mapping(s) to %s", count, args.path)
        elif args.mode == "import":
            await import_records(store, load_snapshot(args.path))
        else:
            written = await import_records(store, load_taskbot_state(args.path))
            logger.info("Synced %d thread mapping(s) from TaskBot state %s", written, args.path)
        return 0
    finally:
        await db.close()


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="MondayBot: sync Monday.com items with Discord forum threads",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s                                        # Gateway + webhook server (config.yaml)
  %(prog)s -c myconfig.yaml -v                    # Custom config, debug logging
  %(prog)s --mode webhook                         # Webhook relay only, no mention handling
  %(prog)s --mode export --path mappings.json     # Dump mappings to a snapshot file
  %(prog)s --mode import --path mappings.json     # Load mappings from a snapshot file
  %(prog)s --mode import-taskbot --path project-sync-state.json
        """,
    )

    parser.add_argument(
        "-c",
        "--config",
        default="config.yaml",
        help="Path to configuration file (default: config.yaml)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose/debug logging",
    )
    parser.add_argument(
        "--mode",
        choices=["combined", "webhook", "export", "import", "import-taskbot"],
        default="combined",
        help="Run mode (default: combined)",
    )
    parser.add_argument(
        "--path",
        help="Snapshot file for export/import/import-taskbot modes",
    )

    args = parser.parse_args()

    setup_logging(args.verbose)
    logger = logging.getLogger(__name__)

    if args.mode in ("export", "import", "import-taskbot") and not args.path:
        parser.error(f"--path is required for --mode {args.mode}")

    try:
        logger.info("Loading configuration from %s", args.config)
        config = load_config(args.config)
    except (FileNotFoundError, ValueError) as e:
        logger.error(str(e))
        return 1

    try:
        if args.mode in ("combined", "webhook"):
            return asyncio.run(run_bot(args, logger, config))
        return asyncio.run(run_maintenance(args, logger, config))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 0
    except Exception as e:
        logger.exception("Fatal error: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
