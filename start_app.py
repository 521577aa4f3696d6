#!/usr/bin/env python
"""Start the stock-sync API under uvicorn, configured from app settings."""
import os
import uvicorn

from app.core.config import Settings, get_settings


def uvicorn_options(settings: Settings) -> dict:
    port = int(os.environ.get("PORT", 8000))
    return {
        "host": "0.0.0.0",
        "port": port,
        "log_level": settings.LOG_LEVEL.lower(),
        # Auto-reload only for local debugging
        "reload": settings.DEBUG and settings.ENVIRONMENT == "development",
    }


if __name__ == "__main__":
    options = uvicorn_options(get_settings())
    print(f"Starting stock sync on port {options['port']}")
    uvicorn.run("app.main:app", **options)
