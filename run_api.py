#!/usr/bin/env python3
"""
Script to run the Library Management API server.
"""

import uvicorn

from api.config import config
from utilities.config import config as library_config
from utilities.logger import setup_logging


def main():
    """Run the API server."""
    setup_logging(
        log_level=library_config.log_level,
        log_format=library_config.log_format,
        log_file=library_config.get_log_file_path(),
        debug=library_config.debug
    )

    print("🚀 Starting Library Management API Server")
    print(f"📡 Host: {config.host}")
    print(f"🔌 Port: {config.port}")
    print(f"🌐 Debug: {config.debug}")
    print(f"📚 Database: {library_config.database_url.split('@')[-1]}")
    print("=" * 50)

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
