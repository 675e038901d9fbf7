#!/usr/bin/env python3
"""
Token Ledger Entry Point

Starts the FastAPI server with the token ledger configured from the
environment (TOKEN_LEDGER_* variables or a .env file).
"""

import sys

from token_ledger.api import run_server
from token_ledger.config import get_config
from token_ledger.logging_config import setup_logging


if __name__ == "__main__":
    config = get_config()
    setup_logging(config.log_level, fmt=config.log_format, log_file=config.log_file)

    print(f"Starting Token Ledger: {config.token_name} ({config.token_symbol})")
    print(f"Storage: {config.storage_url}")
    print(f"API available at: http://{config.api_host}:{config.api_port}")
    print(f"Documentation at: http://{config.api_host}:{config.api_port}/docs")
    print()

    try:
        run_server(host=config.api_host, port=config.api_port)
    except KeyboardInterrupt:
        print("\nShutting down Token Ledger...")
    except Exception as e:
        print(f"Error starting server: {e}")
        sys.exit(1)
