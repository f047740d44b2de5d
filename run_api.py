#!/usr/bin/env python3
"""
Script to run the Book Club API server.
"""

import sys
from pathlib import Path

import uvicorn

# Add project root to Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from api.config import config
from utilities.config import config as storage_config


def main():
    """Run the API server."""
    print("Starting Book Club API Server")
    print(f"Host: {config.host}")
    print(f"Port: {config.port}")
    print(f"Debug: {config.debug}")
    print(f"Database: {storage_config.mongodb_database}")
    print("=" * 50)

    # uvicorn handles SIGINT/SIGTERM and runs the lifespan shutdown,
    # which closes the MongoDB client
    uvicorn.run(
        "api.main:app",
        host=config.host,
        port=config.port,
        reload=config.debug,
        log_level=config.log_level.lower(),
        access_log=True
    )


if __name__ == "__main__":
    main()
