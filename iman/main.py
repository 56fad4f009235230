import argparse
import logging
import sys

from iman.core.app import LOG_FORMAT, ImanApp


def setup_basic_logging():
    """Setup basic stdout logging before config is loaded"""
    root_logger = logging.getLogger()
    if not root_logger.handlers:  # Only add handler if none exists
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root_logger.addHandler(handler)
        root_logger.setLevel(logging.DEBUG)
        logging.debug("Basic logging initialized")


def main(argv=None):
    setup_basic_logging()

    parser = argparse.ArgumentParser(description='Iman prayer and habit tracker')
    parser.add_argument('--config',
                        help='Path to config file (default: ~/.iman_tracker/config.yaml)')
    parser.add_argument('--watch', action='store_true',
                        help='Reload when the config file changes')

    args = parser.parse_args(argv)

    app = ImanApp(config_path=args.config, watch=args.watch)
    app.run()


if __name__ == "__main__":
    main()
