#!/usr/bin/env python3
"""Run script for blockwise."""

import logging
import os

import uvicorn

from blockwise.database.database import init_db

if __name__ == "__main__":
    logging.basicConfig(level=logging.DEBUG if os.getenv("DEBUG", "False").lower() == "true" else logging.INFO)
    init_db()
    uvicorn.run(
        "blockwise.api.app:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        reload=os.getenv("DEBUG", "False").lower() == "true",
    )
