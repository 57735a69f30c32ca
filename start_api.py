#!/usr/bin/env python3
"""
Startup script for the Taste Plans API.
"""

import logging

import uvicorn

from tasteplans.config import load_settings

if __name__ == "__main__":
    settings = load_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    print("Starting Taste Plans API...")
    print("API Documentation: http://localhost:8000/docs")
    print("Health Check: http://localhost:8000/health")
    print("\nPress CTRL+C to stop\n")

    uvicorn.run(
        "tasteplans.api.app:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level=settings.log_level.lower()
    )
