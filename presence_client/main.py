#!/usr/bin/env python3
"""Presence Node - Client Entry Point"""

import argparse
import asyncio
import logging
import sys

from presence_server.errors import MalformedState
from presence_server.protocol import GlobalState

from .colors import hue_to_hex
from .config import ConfigError, get_default_config_path, load_config
from .websocket_client import PresenceClient

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def format_state(state: GlobalState, own_id: str = "") -> str:
    """Render the peer list as one line per client."""
    lines = [f"-- {len(state.clients)} here (version {state.version}) --"]
    for client in state.clients:
        marker = "*" if client.id == own_id else " "
        lines.append(f"{marker} {hue_to_hex(client.attribute)}  {client.display_name}")
    return "\n".join(lines)


def main():
    """CLI entry point."""
    parser = argparse.ArgumentParser(description="Presence Node Client")
    parser.add_argument("--config", "-c", help=f"Config file (default: {get_default_config_path()})")
    parser.add_argument("--server", "-s", help="Server WebSocket URL (overrides config)")
    parser.add_argument("--color", type=int, help="Color hue 0-359 (overrides config)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        config = load_config(args.config)
    except (ConfigError, FileNotFoundError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    if args.server:
        config["server_url"] = args.server
    if args.color is not None:
        config["color"] = args.color % 360

    client = PresenceClient(
        server_url=config["server_url"],
        poll_interval_ms=config["poll_interval_ms"],
        request_timeout_ms=config["request_timeout_ms"],
        color=config["color"],
    )
    client.on_state = lambda state: print(
        format_state(state, client.identity.id if client.identity else "")
    )

    try:
        asyncio.run(client.run())
    except KeyboardInterrupt:
        logger.info("Interrupted, exiting")
    except MalformedState as e:
        logger.error(str(e))
        sys.exit(2)


if __name__ == "__main__":
    main()
