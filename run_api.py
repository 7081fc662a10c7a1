#!/usr/bin/env python3
"""
Script to run the Storefront Catalog API server.
"""

import sys
from pathlib import Path

import uvicorn

# Add project root to Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from catalog_api.config import config as api_config
from utilities.config import config


def main():
    """Run the API server."""
    print("🚀 Starting Storefront Catalog API Server")
    print(f"📡 Host: {api_config.host}")
    print(f"🔌 Port: {api_config.port}")
    print(f"Environment: {config.environment}")
    print(f"📚 Database: {config.mongodb_database}")
    print(f"Uploads: {config.get_upload_root_path()}")
    print("=" * 50)

    uvicorn.run(
        "catalog_api.main:app",
        host=api_config.host,
        port=api_config.port,
        reload=config.debug,
        log_level=config.log_level.lower(),
        access_log=True
    )


if __name__ == "__main__":
    main()
