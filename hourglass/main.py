"""
Main Entry Module

Runs the reporting service with uvicorn.

Usage:
    python -m hourglass.main
"""

import os

import uvicorn

from hourglass.app import app


def main():
    uvicorn.run(
        app,
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000"))
    )


if __name__ == "__main__":
    main()
