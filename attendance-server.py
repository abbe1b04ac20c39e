#!/usr/bin/env python3
"""Punchclock server — manual attendance triggers plus the daily scheduler.

Usage:
    python attendance-server.py
"""

import os

import uvicorn

from punchclock.env_setup import check_and_prompt_env

# ============================================
# Main entry point
# ============================================
if __name__ == "__main__":
    check_and_prompt_env(os.path.join(os.path.dirname(os.path.abspath(__file__)), ".env"))

    # Imported after the prompt so CONFIG sees the new values.
    from punchclock.adapters.web.server import app
    from punchclock.config import CONFIG

    uvicorn.run(app, host="127.0.0.1", port=CONFIG["port"], log_level="info")
