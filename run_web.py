#!/usr/bin/env python3
"""Entry point for the WatchMQTT dashboard web interface."""

import argparse
import logging

from watchmqtt.logging_config import setup_logging

if __name__ in {"__main__", "__mp_main__"}:
    parser = argparse.ArgumentParser(description="WatchMQTT Dashboard Web UI")
    parser.add_argument("--debug", action="store_true", help="Enable DEBUG logging (all API requests visible)")
    args = parser.parse_args()
    setup_logging(logging.DEBUG if args.debug else None)

    from watchmqtt.web.app import start
    start()
