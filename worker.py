"""Worker entrypoint: hosts the recurring job scheduler until SIGINT/SIGTERM."""

import asyncio
import sys

from jobhost.config import config
from jobhost.lib.logger import configure_logger
from jobhost.services.infrastructure.startup_service import run_standalone

logger = configure_logger(__name__)

# Load configuration
_ = config


async def main():
    """Run the job host in standalone mode."""
    logger.info("Starting job host in worker mode...")
    logger.info(f"Queues: {', '.join(config.scheduler.queues)}")

    try:
        await run_standalone()
    except KeyboardInterrupt:
        logger.info("Worker mode interrupted by user")
    except Exception as e:
        logger.error(f"Critical error in worker mode: {e}", exc_info=True)
        sys.exit(1)
    finally:
        logger.info("Worker mode shutdown complete")


if __name__ == "__main__":
    asyncio.run(main())
