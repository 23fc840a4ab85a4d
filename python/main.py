#!/usr/bin/env python3
"""
Main entry point for the Volume Bar application.
"""

import sys
import signal
import argparse
import logging
from volumebar.app import VolumeBarApp
from volumebar.constants import DEFAULT_CONFIG_FILE
from volumebar import __version__

# Set up basic logging before application starts
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
    datefmt="%H:%M:%S",
)

logger = logging.getLogger(__name__)


def print_banner():
    """Print application banner"""
    banner = f"""
╔═════════════════════════════════════════════════════════╗
║                       Volume Bar                        ║
║          Volume Control with On-Screen Display          ║
║                    Version {__version__}                        ║
╚═════════════════════════════════════════════════════════╝

Features:
• Absolute and relative volume requests over MQTT
• Buffered crossing into over-max volume
• Click-through volume bar that hides when idle
"""
    print(banner)


def build_parser():
    """Build the command line parser"""
    parser = argparse.ArgumentParser(
        description="Volume Bar - volume control with on-screen display",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s                          # Run with default settings
  %(prog)s --config my_config.json  # Use custom configuration file
  %(prog)s --no-overlay             # Run without the on-screen volume bar
  %(prog)s --request +5             # Apply one request and exit

Requests:
  A 1-3 digit integer sets an absolute volume ("55"). A leading '+' or '-'
  changes the volume relative to the current level ("+5", "-10").
        """,
    )

    parser.add_argument(
        "--config",
        "-c",
        default=DEFAULT_CONFIG_FILE,
        help=f"Configuration file path (default: {DEFAULT_CONFIG_FILE})",
    )
    parser.add_argument("--no-overlay", action="store_true", help="Disable the on-screen volume bar")
    parser.add_argument("--no-mqtt", action="store_true", help="Disable the MQTT front end")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument(
        "--request",
        "-r",
        metavar="NEW_VOLUME",
        help="Apply a single volume request, print the result and exit",
    )
    parser.add_argument(
        "--quiet",
        "-q",
        action="store_true",
        help="Suppress banner and reduce console output",
    )
    parser.add_argument(
        "--version", action="version", version=f"Volume Bar v{__version__}"
    )
    return parser


def main(argv=None):
    """Main entry point"""
    parser = build_parser()
    args = parser.parse_args(argv)

    app = VolumeBarApp(config_file=args.config)

    # One-shot mode
    if args.request is not None:
        print(app.apply_once(args.request))
        return 0

    if not args.quiet:
        print_banner()

    try:
        logger.info("Initializing Volume Bar Application...")

        if not app.initialize_components(
            enable_overlay=not args.no_overlay,
            enable_mqtt=not args.no_mqtt,
        ):
            logger.error("Failed to initialize application components")
            return 1

        if args.debug:
            logging.getLogger().setLevel(logging.DEBUG)
            for handler in logging.getLogger().handlers:
                handler.setLevel(logging.DEBUG)
            logger.info("Debug mode enabled via command line")

        logger.info(f"Configuration file: {args.config}")
        logger.info(f"Volume bar: {'enabled' if app.overlay else 'disabled'}")
        logger.info(f"MQTT: {'enabled' if app.mqtt_client else 'disabled'}")

        # Stop cleanly on SIGTERM as well as Ctrl+C
        signal.signal(signal.SIGTERM, lambda signum, frame: setattr(app, "running", False))

        logger.info("Starting application...")
        return 0 if app.start() else 1

    except KeyboardInterrupt:
        logger.info("Application interrupted by user")
        return 0

    except PermissionError as e:
        logger.error(f"Permission denied: {e}")
        return 1

    except Exception as e:
        logger.error(f"Fatal error: {e}")
        if args.debug:
            import traceback

            logger.error(f"Traceback: {traceback.format_exc()}")
        return 1


def cli():
    """Console script entry point"""
    sys.exit(main())


if __name__ == "__main__":
    cli()
