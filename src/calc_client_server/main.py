"""
Command-line entrypoints.

- ``calc-server`` starts the CALC/1.0 server and serves until interrupted.
- ``calc-client`` opens an interactive session against a running server.
"""

import argparse
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field, ValidationError

from calc_client_server.client.client import DEFAULT_CONFIG_FILE, CalcClient
from calc_client_server.common.logger import logger
from calc_client_server.server.server import DEFAULT_PORT, DEFAULT_READ_TIMEOUT, CalcServer


class ClientArgs(BaseModel):
    """
    Pydantic model used to validate client CLI arguments.

    Attributes
    ----------
    config : Path
        Optional properties file overriding host and port.
    """

    config: Path = DEFAULT_CONFIG_FILE


def parse_server_args(argv: Optional[List[str]] = None) -> CalcServer:
    """
    Parse server arguments into a validated, not yet started server.

    :param argv: Argument list, defaults to ``sys.argv[1:]``
    :return: Configured server
    :rtype: CalcServer
    """
    parser = argparse.ArgumentParser(description="CALC/1.0 arithmetic server")
    parser.add_argument("--host", default="0.0.0.0", help="Address to listen on")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT, help="TCP port")
    parser.add_argument("--timeout", type=float, default=DEFAULT_READ_TIMEOUT, help="Idle read timeout in seconds")
    parser.add_argument("--workers", type=int, default=None, help="Worker threads, at least 2 (default: max(2, CPU count))")
    args = parser.parse_args(argv)

    options = {"host": args.host, "port": args.port, "read_timeout": args.timeout}
    if args.workers is not None:
        options["workers"] = args.workers
    try:
        return CalcServer(**options)
    except ValidationError as exc:
        parser.error(str(exc))


def parse_client_args(argv: Optional[List[str]] = None) -> ClientArgs:
    """
    Parse and validate client arguments.

    :param argv: Argument list, defaults to ``sys.argv[1:]``
    :return: Validated CLI arguments
    :rtype: ClientArgs
    """
    parser = argparse.ArgumentParser(description="Interactive CALC/1.0 client")
    parser.add_argument(
        "--config",
        default=str(DEFAULT_CONFIG_FILE),
        help="Properties file with host= and port= overrides",
    )
    args = parser.parse_args(argv)

    try:
        return ClientArgs(config=args.config)
    except ValidationError as exc:
        parser.error(str(exc))


def server_main(argv: Optional[List[str]] = None) -> None:
    server = parse_server_args(argv)
    try:
        server.start()
    except KeyboardInterrupt:
        logger.info("🛑 Interrupted, shutting down")
        server.stop()
    except OSError as exc:
        logger.error(f"🖥️❌ Failed to start server: {exc}")
        raise SystemExit(1)


def client_main(argv: Optional[List[str]] = None) -> None:
    cli_args = parse_client_args(argv)
    client = CalcClient.from_config(cli_args.config)
    try:
        client.interactive()
    except OSError as exc:
        print(f"Connection error: {exc}")
        raise SystemExit(1)


if __name__ == "__main__":
    server_main()
