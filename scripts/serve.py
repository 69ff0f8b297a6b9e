#!/usr/bin/env python3
"""Serve the HTTP trigger surface."""

import os
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

import uvicorn

from feed_digest.api.app import app
from feed_digest.logging_config import configure_logging
from feed_digest.storage.factory import get_article_storage


if __name__ == "__main__":
    from dotenv import load_dotenv
    load_dotenv()

    configure_logging(storage=get_article_storage())
    port = int(os.environ.get("PORT", 8000))

    print("\n" + "=" * 60)
    print("FEED DIGEST")
    print("=" * 60)
    print(f"API on http://localhost:{port}/api/health")
    print("Press Ctrl+C to stop")
    print("=" * 60 + "\n")

    uvicorn.run(app, host="0.0.0.0", port=port)
