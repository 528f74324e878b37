import argparse
import logging


def add_config_arg(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", default="config/settings.yaml", help="Path to config file")


def add_log_level_arg(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--log-level", default=None, help="Logging level (DEBUG, INFO, WARNING, ERROR)")


def setup_logging(log_level: str) -> None:
    logging.basicConfig(level=getattr(logging, str(log_level).upper(), logging.INFO),
                        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
