"""
Main entry point for the clinic agenda engine.
Serves the practitioner WebSocket endpoint and runs the reminder scheduler.
"""

import asyncio
import sys

from aiohttp import web

from config import settings
from live_updates import create_realtime_app
from scheduler import setup_scheduler, shutdown_scheduler
from scheduling import get_scheduling_service
from utils.logging_config import setup_logging

# Configure logging using centralized configuration
logger = setup_logging(
    name=__name__, log_level=settings.log_level, log_file="app.log", log_dir="logs"
)


async def main() -> None:
    """Main async function to run the engine's background services."""
    # Validate configuration
    try:
        settings.validate_all_required()
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)

    service = get_scheduling_service()
    runner = web.AppRunner(create_realtime_app())

    try:
        logger.info(f"Starting clinic agenda engine ({settings.environment})...")

        setup_scheduler(service=service)

        await runner.setup()
        site = web.TCPSite(runner, host=settings.host, port=settings.port)
        await site.start()
        logger.info(f"Realtime server listening on {settings.host}:{settings.port}")

        await asyncio.Event().wait()

    except asyncio.CancelledError:
        logger.info("Engine cancelled")
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        raise  # Re-raise to ensure proper exit code
    finally:
        logger.info("Shutting down...")
        shutdown_scheduler()
        await service.wait_for_side_effects()
        await runner.cleanup()

        try:
            await service.notifier.close()
            logger.info("Bot session closed")
        except Exception as e:
            logger.error(f"Error closing bot session: {e}", exc_info=True)

        logger.info("Shutdown complete")


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(0)
