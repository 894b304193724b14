"""Command-line entry point for SCIM Bulk provisioning against Grist.

This module serves as a CLI wrapper around gristctl.core services.
"""
from __future__ import annotations
import argparse
import json
import logging
import sys
from pathlib import Path

SCRIPT_DIR = Path(__file__).parent
PROJECT_ROOT = SCRIPT_DIR.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from gristctl.config import GristConfig, load_settings
from gristctl.core.grist import GristClient
from gristctl.core.scim_bulk import ScimBulkProcessor


def _read_input(source: str) -> str:
    if source == "-":
        return sys.stdin.read()
    return Path(source).read_text(encoding="utf-8")


def _resolve_config(args: argparse.Namespace, parser: argparse.ArgumentParser) -> GristConfig:
    """Load settings, letting --url/--token win over the environment."""
    try:
        return load_settings(args.config, grist_url=args.url, grist_token=args.token)
    except RuntimeError as e:
        parser.error(str(e))


def main(argv: list[str] | None = None) -> int:
    """Command-line entry point."""
    parser = argparse.ArgumentParser(description="SCIM 2.0 Bulk provisioning for Grist")
    parser.add_argument("--url", help="Grist server URL (overrides GRIST_URL)")
    parser.add_argument("--token", help="Grist API key (overrides GRIST_TOKEN)")
    parser.add_argument("--config", default=None, help="dotenv configuration file (default: ~/.gristctl)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging on stderr")

    sub = parser.add_subparsers(dest="cmd")

    run = sub.add_parser("run", help="Process a SCIM Bulk request file")
    run.add_argument("file", help="Bulk request JSON file, or - for stdin")

    sub.add_parser("ping", help="Check the Grist connection")

    serve = sub.add_parser("serve", help="Serve POST /scim/v2/Bulk over HTTP")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=5000)

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    if not args.cmd:
        parser.print_help()
        return 0

    cfg = _resolve_config(args, parser)
    client = GristClient(cfg.grist_url, cfg.grist_token, timeout=cfg.request_timeout)

    if args.cmd == "run":
        try:
            raw = _read_input(args.file)
        except (OSError, UnicodeDecodeError) as e:
            print(f"[run] Error: {e}", file=sys.stderr)
            return 1
        processor = ScimBulkProcessor(client, cfg.scim_base_path)
        bulk_response, status = processor.process_text(raw)
        print(json.dumps(bulk_response.to_dict(), indent=2, ensure_ascii=False))
        return 0 if status == 200 else 1

    if args.cmd == "ping":
        if client.test_connection():
            print(f"Connected to {cfg.grist_url}")
            return 0
        print(f"[ping] Error: cannot reach {cfg.grist_url}", file=sys.stderr)
        return 1

    if args.cmd == "serve":
        from gristctl.flask_app import create_app
        create_app(cfg, client).run(host=args.host, port=args.port)
        return 0

    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
