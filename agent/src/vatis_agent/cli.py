"""Command-line interface for Vatis agent."""

import argparse
import asyncio
import logging
import platform
import sys
from typing import List, Optional

from . import __version__
from .config import AgentConfig, ConfigError, ConfigManager, log_level_from_env, parse_interval
from .collectors import DEFAULT_COLLECTORS, IdentityError, describe_host, resolve_identity
from .procfs import StatsReadError
from .sampler import run_tick
from .scheduler import Agent
from .transport import BrokerClient, ConsoleClient, TransportError

logger = logging.getLogger("vatis-agent")


def setup_logging() -> None:
    """Configure logging from the LOG_LEVEL environment variable (default WARNING)."""
    logging.basicConfig(
        level=log_level_from_env(),
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def build_config(args: argparse.Namespace) -> AgentConfig:
    """Merge the optional config file with positional arguments."""
    if args.config:
        config = ConfigManager(args.config).load()
    else:
        config = AgentConfig()

    if args.broker is not None:
        config.broker_url = args.broker
    if args.interval is not None:
        config.interval = parse_interval(args.interval)

    return config


def cmd_run(config: AgentConfig) -> int:
    """Sample and publish until SIGINT or SIGTERM."""
    try:
        client = BrokerClient(config)
    except TransportError as e:
        logger.error(f"error creating the client: {e}")
        return 1

    agent = Agent(client, config)

    try:
        asyncio.run(agent.run())
    except TransportError as e:
        logger.error(f"error connecting to MQTT server: {e}")
        return 1
    except IdentityError as e:
        logger.error(f"cannot determine host identity: {e}")
        return 1
    except StatsReadError as e:
        logger.error(f"error reading kernel statistics: {e}")
        return 1

    return 0


def cmd_dry_run(config: AgentConfig) -> int:
    """Sample one tick and print the messages instead of publishing them."""
    try:
        identity = resolve_identity()
        asyncio.run(run_tick(
            ConsoleClient(),
            identity,
            DEFAULT_COLLECTORS,
            strict=config.strict_collectors,
        ))
        return 0

    except IdentityError as e:
        logger.error(f"cannot determine host identity: {e}")
        return 1
    except StatsReadError as e:
        logger.error(f"error reading kernel statistics: {e}")
        return 1


def cmd_info(config: AgentConfig) -> int:
    """Show agent information."""
    try:
        identity = resolve_identity()
    except IdentityError as e:
        logger.error(f"cannot determine host identity: {e}")
        return 1

    host = describe_host()

    print("\nVatis Agent Information")
    print("=" * 50)
    print(f"Version:     {__version__}")
    print(f"Identity:    {identity}")
    print(f"Broker:      {config.broker_url}")
    print(f"Interval:    {config.interval}s")
    print(f"Hostname:    {host['hostname']}")
    print(f"OS:          {host['os']['name']} {host['os']['version']}")
    print(f"Kernel:      {host['kernel']}")
    print("=" * 50)

    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vatis-agent",
        description="Vatis Agent - publishes memory and TCP statistics to an MQTT broker",
    )

    parser.add_argument("--version", action="version", version=f"vatis-agent {__version__}")
    parser.add_argument(
        "broker",
        nargs="?",
        help="MQTT broker URL (default: tcp://localhost:1883)",
    )
    parser.add_argument(
        "interval",
        nargs="?",
        help="Sampling interval in whole seconds (default: 10)",
    )
    parser.add_argument(
        "--config",
        help="JSON configuration file; positional arguments take precedence",
    )

    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--dry-run",
        action="store_true",
        help="Sample once and print the messages instead of publishing",
    )
    mode.add_argument(
        "--info",
        action="store_true",
        help="Show host identity and exit",
    )

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)
    setup_logging()

    if platform.system() != "Linux":
        logger.error("unfortunately vatis only works on linux")
        return 1

    try:
        config = build_config(args)
    except ConfigError as e:
        logger.error(f"invalid configuration: {e}")
        return 1

    if logger.isEnabledFor(logging.INFO):
        logger.info(f"vatis-agent {__version__} on {describe_host()}")

    if args.info:
        return cmd_info(config)
    elif args.dry_run:
        return cmd_dry_run(config)
    else:
        return cmd_run(config)


if __name__ == "__main__":
    sys.exit(main())
