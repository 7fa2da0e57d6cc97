#!/usr/bin/env python3
"""
Sandbox Banking Entry Point

Starts the FastAPI server exposing the sandbox data import endpoint.
"""

import sys
from pathlib import Path

# Add the project root to Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from sandbox_banking.api import run_server
from sandbox_banking.config import get_config
from sandbox_banking.logging_config import setup_logging


if __name__ == "__main__":
    config = get_config()
    setup_logging(config.log_level, "sandbox", config.log_format, config.log_file)

    print("Starting Sandbox Banking API...")
    print(f"Data import endpoint {'enabled' if config.data_import_enabled else 'disabled'}")
    print(f"API available at: http://localhost:{config.api_port}")
    print(f"Documentation at: http://localhost:{config.api_port}/docs")
    print()

    try:
        run_server(
            host=config.api_host,
            port=config.api_port,
            debug=False
        )
    except KeyboardInterrupt:
        print("\nShutting down Sandbox Banking API...")
    except Exception as e:
        print(f"Error starting server: {e}")
        sys.exit(1)
