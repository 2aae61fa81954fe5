"""
WAHA Pairing - Entry Point

Links a WhatsApp account to a WAHA session by QR scan and prints the
resulting inbox record as JSON.
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Optional

import yaml

from .config import AppConfig, ConfigError, create_default_config, load_config
from .gateway import MockGatewayClient, WahaGatewayClient
from .pairing import InboxRecord, PairingController, PairingState
from .ui import TerminalPairingUI, WebPairingUI

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="waha-pair",
        description="Link a WhatsApp account to a WAHA session by QR scan",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Pair against a local WAHA server (terminal QR)
  waha-pair --base-url http://localhost:3000 --api-key secret

  # Pair from a browser
  waha-pair --web-ui --port 8200

  # Name the inbox up front and reuse a session name
  waha-pair --session-id support-line --name "Support"

  # Try the flow without a WAHA server
  waha-pair --mock

  # Write a starter pairing.yaml
  waha-pair --init-config pairing.yaml
"""
    )

    parser.add_argument('--config', '-c', help='Path to pairing.yaml')
    parser.add_argument('--base-url', help='WAHA base URL (default: http://localhost:3000)')
    parser.add_argument('--api-key', help='WAHA API key (sent as X-Api-Key)')
    parser.add_argument('--session-id', help='Session name to use instead of a generated one')
    parser.add_argument('--name', help='Inbox name; skips the interactive prompt')
    parser.add_argument('--mock', action='store_true', help='Use canned gateway responses')
    parser.add_argument('--web-ui', action='store_true', help='Use web UI instead of terminal UI')
    parser.add_argument('--port', type=int, help='Web UI port (default: 8200)')
    parser.add_argument('--debug', action='store_true', help='Enable debug logging')
    parser.add_argument('--init-config', metavar='PATH', help='Write a default configuration file and exit')

    return parser


def apply_overrides(config: AppConfig, args: argparse.Namespace) -> AppConfig:
    """Command-line flags win over the configuration file."""
    if args.base_url:
        config.gateway.base_url = args.base_url
    if args.api_key:
        config.gateway.api_key = args.api_key
    if args.mock:
        config.gateway.mock_responses = True
    if args.web_ui:
        config.ui.mode = "web"
    if args.port:
        config.ui.web_port = args.port
    if args.debug:
        config.logging.level = "DEBUG"
    return config


def create_gateway(config: AppConfig):
    if config.gateway.mock_responses:
        logger.info("Using mock WAHA gateway")
        return MockGatewayClient()
    return WahaGatewayClient(config.gateway)


async def prompt_inbox_name(controller: PairingController) -> Optional[InboxRecord]:
    """Ask for a name until a valid one is given."""
    while True:
        name = await asyncio.to_thread(input, "Inbox name: ")
        record = await controller.submit_name(name)
        if record or controller.state != PairingState.NAMING:
            return record


async def wait_for_naming(controller: PairingController) -> bool:
    """Wait for the naming step, offering a retry each time pairing fails."""
    while True:
        state = await controller.wait_for_state(PairingState.NAMING, PairingState.ERROR)
        if state == PairingState.NAMING:
            return True
        if controller.closed:
            return False

        answer = await asyncio.to_thread(input, "Retry? [y/N]: ")
        if answer.strip().lower() not in ("y", "yes"):
            return False
        await controller.retry()


async def run_pairing(
    config: AppConfig,
    session_id: Optional[str] = None,
    inbox_name: Optional[str] = None,
) -> Optional[InboxRecord]:
    """
    Run one pairing flow to completion.

    Returns:
        The InboxRecord, or None if pairing failed or was cancelled
    """
    web_ui = config.ui.mode == "web"
    ui = WebPairingUI(host=config.ui.web_host, port=config.ui.web_port) if web_ui else TerminalPairingUI()

    async with create_gateway(config) as gateway:
        controller = PairingController(
            gateway,
            config.pairing,
            session_id=session_id,
            ui_callback=ui.update,
        )

        if web_ui:
            ui.bind(controller)
            await ui.start()

        try:
            await controller.start()

            if web_ui:
                # Naming, retries and cancel all happen in the browser
                if inbox_name:
                    await controller.wait_for_state(PairingState.NAMING, PairingState.COMPLETED)
                    await controller.submit_name(inbox_name)
                await controller.wait_for_state(PairingState.COMPLETED)
                return controller.record

            if not await wait_for_naming(controller):
                return None

            if inbox_name:
                return await controller.submit_name(inbox_name)
            return await prompt_inbox_name(controller)

        finally:
            await controller.close()
            if web_ui:
                await ui.stop()


async def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.init_config:
        path = create_default_config(args.init_config)
        print(f"✓ Configuration written to {path}")
        return 0

    try:
        config = apply_overrides(load_config(args.config), args)
        is_valid, errors = config.validate()
        if not is_valid:
            raise ConfigError("; ".join(errors))
    except (ConfigError, FileNotFoundError, KeyError, yaml.YAMLError) as e:
        print(f"❌ Configuration error: {e}")
        return 1

    logging.basicConfig(
        level=getattr(logging, config.logging.level, logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    record = await run_pairing(config, session_id=args.session_id, inbox_name=args.name)
    if record is None:
        print("❌ Pairing did not complete")
        return 1

    print()
    print("✅ PAIRING COMPLETE")
    print(json.dumps(record.to_dict(), indent=2))
    return 0


def run():
    """Entry point for console script"""
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        print("\n\nPairing cancelled by user")
        sys.exit(1)


if __name__ == '__main__':
    run()
