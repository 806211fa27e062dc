#!/usr/bin/env python3
"""
TxWatch Gateway Simulator Runner
"""

import uvicorn
from loguru import logger
import sys
import os

# Add the current directory to Python path
current_dir = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, current_dir)

from txwatch.config import settings, configure_logging

def main():
    """Main application entry point"""
    configure_logging()
    logger.info(f"🚀 Starting {settings.app_name} gateway simulator...")
    logger.info(f"🌐 Gateway API will be served at: http://{settings.host}:{settings.port}/api/v2")

    try:
        uvicorn.run(
            "txwatch.main:app",
            host=settings.host,
            port=settings.port,
            reload=False,
            log_level=settings.log_level.lower(),
            access_log=settings.debug,
        )
    except KeyboardInterrupt:
        logger.info("🛑 Simulator stopped by user")
    except Exception as e:
        logger.error(f"❌ Failed to start simulator: {e}")
        logger.error(f"Error details: {type(e).__name__}")
        sys.exit(1)

if __name__ == "__main__":
    main()
