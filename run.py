"""Uvicorn launcher for the travel workflow API.

Usage:
    python run.py              # development (reload enabled)
    python run.py --no-reload  # production-like
"""

import sys

import uvicorn

if __name__ == "__main__":
    reload = "--no-reload" not in sys.argv
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=reload,
    )
