#!/usr/bin/env python3
"""
SQL Gateway Startup Script
Serves the gateway over HTTP with uvicorn. The store is opened during
startup; if it cannot be opened the process exits without serving.
"""
import os

import uvicorn

from sqlgate.main import app

if __name__ == "__main__":
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8080"))
    uvicorn.run(app, host=host, port=port)
