#!/usr/bin/env python3
"""
Lending Ledger Entry Point

Starts the FastAPI server with the lending ledger engine.
"""

import sys

import uvicorn

from lending_ledger.config import get_config
from lending_ledger.logging_config import setup_logging


def run_server(host: str, port: int, workers: int = 1, debug: bool = False):
    """Run the FastAPI server"""
    uvicorn.run(
        "lending_ledger.api:app",
        host=host,
        port=port,
        workers=workers,
        reload=debug,
        log_level="info"
    )


if __name__ == "__main__":
    config = get_config()
    logger = setup_logging(config.log_level, log_format=config.log_format, log_file=config.log_file)
    logger.info(f"Starting Lending Ledger on {config.api_host}:{config.api_port} "
                f"(storage={config.storage_backend}, auth={'on' if config.auth_enabled else 'off'})")
    
    try:
        run_server(config.api_host, config.api_port, workers=config.api_workers)
    except KeyboardInterrupt:
        logger.info("Shutting down Lending Ledger")
    except Exception as e:
        logger.error(f"Error starting server: {e}")
        sys.exit(1)
