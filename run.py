#!/usr/bin/env python3
"""
Token Ledger Entry Point

Starts the FastAPI server with the configured ledger.
"""

import sys
from pathlib import Path

# Add the project root to Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from token_ledger.api import run_server
from token_ledger.config import get_config
from token_ledger.logging_config import setup_logging


if __name__ == "__main__":
    config = get_config()
    logger = setup_logging(config.log_level, log_format=config.log_format, log_file=config.log_file)
    logger.info(
        f"Starting {config.token_symbol} ledger on {config.api_host}:{config.api_port} "
        f"({config.storage_backend} storage, base percent {config.base_percent})"
    )

    try:
        run_server(host=config.api_host, port=config.api_port)
    except KeyboardInterrupt:
        logger.info("Shutting down token ledger")
    except Exception as e:
        logger.error(f"Error starting server: {e}")
        sys.exit(1)
