#!/usr/bin/env python
"""Main entry point for the Notewell MCP server."""
import argparse
import logging
import os
import sys
from pathlib import Path

from notewell.config import config
from notewell.i18n import Translator
from notewell.observability import configure_logging
from notewell.server.mcp_server import NotewellMcpServer
from notewell.storage.settings_store import SettingsStore


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Notewell MCP Server")
    parser.add_argument(
        "--storage-dir",
        help="Directory holding the collection directories",
        type=str,
        default=os.environ.get("NOTEWELL_STORAGE_DIR")
    )
    parser.add_argument(
        "--collection",
        help="Collection to activate on start",
        type=str,
        default=None
    )
    parser.add_argument(
        "--settings-path",
        help="YAML settings file",
        type=str,
        default=os.environ.get("NOTEWELL_SETTINGS_PATH")
    )
    parser.add_argument(
        "--translations",
        help="YAML file with translated strings",
        type=str,
        default=os.environ.get("NOTEWELL_TRANSLATIONS")
    )
    parser.add_argument(
        "--log-level",
        help="Logging level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=os.environ.get("NOTEWELL_LOG_LEVEL", config.log_level)
    )
    return parser.parse_args(argv)


def update_config(args):
    """Update the global config with command line arguments."""
    if args.settings_path:
        config.settings_path = Path(args.settings_path)
    if args.storage_dir:
        config.storage_directory = Path(args.storage_dir)
    config.log_level = args.log_level


def main(argv=None):
    """Run the Notewell MCP server."""
    args = parse_args(argv)
    update_config(args)

    # Configure logging (console + persistent file logging with rotation)
    log_level = getattr(logging, args.log_level.upper(), logging.INFO)
    try:
        log_dir = configure_logging(level=log_level, console=True)
    except Exception as e:
        # Fall back to basic console logging if file logging fails
        logging.basicConfig(level=log_level)
        logging.getLogger(__name__).warning(f"Failed to configure file logging: {e}")
        log_dir = None

    logger = logging.getLogger(__name__)
    if log_dir:
        logger.info(f"Persistent logging enabled: {log_dir}")

    try:
        settings = SettingsStore(config.settings_path)
        if args.storage_dir:
            storage_directory = Path(args.storage_dir)
            storage_directory.mkdir(parents=True, exist_ok=True)
            settings.storage_directory = str(storage_directory)
        if args.collection:
            settings.active_collection = args.collection
        translator = Translator.from_yaml(Path(args.translations)) if args.translations else None
    except Exception as e:
        logger.error(f"Failed to load settings: {e}")
        sys.exit(1)

    try:
        logger.info("Starting Notewell MCP server")
        server = NotewellMcpServer(settings=settings, translator=translator)
        server.run()
    except Exception as e:
        logger.error(f"Error running server: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
