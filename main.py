#!/usr/bin/env python3
"""
pbscan command line entrypoint.

Reads LOG_LEVEL, OCR_ENGINE, TESSERACT_CMD and MUSL_API_KEY from the
environment (loaded from .env when available). See pbscan/cli.py.
"""
from pbscan.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
