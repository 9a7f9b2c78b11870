#!/usr/bin/env python3
"""
Protocol Whiteboard - Main Entry Point

An interactive whiteboard for sketching lab protocols as connected unit
operation steps and exporting them as protocol JSON.

Usage:
    python main.py
    python main.py protocol.json             # Open with an exported protocol
    python main.py --debug                   # Enable debug logging
    python main.py --config settings.json
    python main.py --workspace ~/lab-boards
"""

import sys
import logging
import argparse
from pathlib import Path
from PyQt6.QtWidgets import QApplication

from services import get_settings
from views import MainWindow


def setup_logging(debug: bool = False):
    """Configure logging for the application."""
    level = logging.DEBUG if debug else logging.INFO

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.addHandler(console_handler)

    logger = logging.getLogger(__name__)
    logger.info(f"Logging initialized at {'DEBUG' if debug else 'INFO'} level")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Protocol Whiteboard')
    parser.add_argument('protocol', nargs='?', help='Protocol JSON file to import on startup')
    parser.add_argument('--debug', action='store_true', help='Enable debug logging')
    parser.add_argument('--config', metavar='PATH', help='Use an alternate settings file')
    parser.add_argument('--workspace', metavar='DIR',
                        help='Store whiteboards and protocols under DIR (remembered)')
    return parser


def main():
    """Main entry point."""
    args = build_parser().parse_args()

    setup_logging(debug=args.debug)

    # First call initializes the shared settings manager
    settings = get_settings(args.config)
    if args.workspace:
        workspace = Path(args.workspace).expanduser().resolve()
        settings.set_workspace_path(settings.paths.active_profile, str(workspace))

    app = QApplication(sys.argv)
    app.setApplicationName("Protocol Whiteboard")
    app.setApplicationVersion("0.1.0")

    window = MainWindow()
    window.show()
    if args.protocol:
        window.open_protocol(args.protocol)

    sys.exit(app.exec())


if __name__ == "__main__":
    main()
