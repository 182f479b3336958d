#!/usr/bin/env python3
"""
Main entry point for the Attribution Worker
"""

import uvicorn
from attribution_worker.core.config import settings
from attribution_worker.core.logging import logging_config_from_settings, setup_logging

if __name__ == "__main__":
    # Setup our custom logging configuration before starting uvicorn
    setup_logging(logging_config_from_settings())

    uvicorn.run(
        "attribution_worker.main:app",
        host="0.0.0.0",
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level="info" if not settings.DEBUG else "debug",
        log_config=None,  # Disable uvicorn's default logging config
    )
