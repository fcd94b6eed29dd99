"""modelgate command line interface."""

import argparse
import sys
from typing import List, Optional

from prettytable import PrettyTable

from modelgate.config import load_config
from modelgate.exceptions import ModelGateError
from modelgate.service import ModelAccessService, create_service
from modelgate.utils.logging import configure_logging


def _service(args: argparse.Namespace) -> ModelAccessService:
    config = load_config(args.config)
    configure_logging(
        verbose=args.verbose,
        level=config.logging.level,
        components=config.logging.components,
    )
    return create_service(config)


def cmd_models(args: argparse.Namespace) -> int:
    with _service(args) as service:
        models = service.list_models(
            user_id=args.user_id, is_authenticated=args.user_id is not None
        )
    if args.provider:
        provider = args.provider.strip().lower()
        models = tuple(m for m in models if m.provider == provider)

    table = PrettyTable()
    table.field_names = ["Provider", "Model ID", "Name", "Context Window", "Accessible"]
    table.align = "l"
    for model in models:
        context_window = model.descriptor.context_window
        table.add_row(
            [
                model.provider,
                model.id,
                model.descriptor.name,
                f"{context_window:,}" if context_window else "N/A",
                "yes" if model.accessible else "no",
            ]
        )
    print(table)
    accessible = sum(1 for m in models if m.accessible)
    print(f"{accessible} of {len(models)} models accessible")
    return 0


def cmd_refresh(args: argparse.Namespace) -> int:
    with _service(args) as service:
        report = service.refresh_catalog()
    print(
        f"Catalog refreshed at {report['timestamp']}: "
        f"{report['previous_count']} -> {report['new_count']} models"
    )
    return 0


def cmd_keys(args: argparse.Namespace) -> int:
    with _service(args) as service:
        status = service.provider_key_status(args.user_id)
    table = PrettyTable()
    table.field_names = ["Provider", "Status"]
    table.align = "l"
    for provider, configured in status.items():
        table.add_row([provider, "Configured" if configured else "Not configured"])
    print(table)
    return 0


def cmd_version(args: argparse.Namespace) -> int:
    from modelgate import __version__

    print(f"modelgate {__version__}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="modelgate", description="Inspect the model catalog and per-user model access"
    )
    parser.add_argument("--config", help="Path to configuration file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Lets --config follow the subcommand as well
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--config", default=argparse.SUPPRESS, help="Path to configuration file")

    models_parser = subparsers.add_parser(
        "models", parents=[common], help="List models with access flags"
    )
    models_parser.add_argument("--user-id", help="Resolve access for this user")
    models_parser.add_argument("--provider", help="Only show models from this provider")
    models_parser.set_defaults(func=cmd_models)

    refresh_parser = subparsers.add_parser(
        "refresh", parents=[common], help="Rebuild the model catalog"
    )
    refresh_parser.set_defaults(func=cmd_refresh)

    keys_parser = subparsers.add_parser(
        "keys", parents=[common], help="Show provider key status for a user"
    )
    keys_parser.add_argument("--user-id", required=True, help="User to inspect")
    keys_parser.set_defaults(func=cmd_keys)

    version_parser = subparsers.add_parser("version", help="Show version")
    version_parser.set_defaults(func=cmd_version)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Parse arguments and dispatch.

    Returns:
        int: 0 on success, 1 on a modelgate error, 2 on usage errors,
        130 when interrupted.
    """
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as e:
        return e.code if isinstance(e.code, int) else 2

    if not getattr(args, "func", None):
        parser.print_help()
        return 2

    try:
        return args.func(args)
    except ModelGateError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
