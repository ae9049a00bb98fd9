"""acmer53 command-line entry point.

Usage::

    acmer53 setup -e admin@example.com
    acmer53 new-cert example.com
    acmer53 revoke-cert ~/.letsencrypt-certs/example.com/cert-20240102T030405123Z.pem
    acmer53 -c config.yaml --debug new-cert example.com
    acmer53 -c config.yaml --validate-only
    python -m acmer53 new-cert example.com
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

log = logging.getLogger(__name__)


def _get_version() -> str:
    from acmer53 import __version__

    return __version__


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="acmer53",
        description="Obtain and revoke ACME certificates using Route 53 DNS-01 validation",
    )
    parser.add_argument(
        "-c",
        "--config",
        default=None,
        metavar="PATH",
        help="Path to a configuration file (YAML or JSON). Defaults apply without one.",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        default=False,
        help="Enable debug output (full tracebacks, verbose logging).",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        default=False,
        help="Log at DEBUG level without re-raising errors.",
    )
    parser.add_argument(
        "--validate-only",
        action="store_true",
        default=False,
        help="Validate the configuration and exit.",
    )
    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"%(prog)s {_get_version()}",
    )

    subparsers = parser.add_subparsers(dest="command")

    setup_parser = subparsers.add_parser(
        "setup",
        help="Create and register the account key",
    )
    setup_parser.add_argument(
        "-e",
        "--email",
        default=None,
        help="Contact email for the account (stored in config.json).",
    )

    new_cert = subparsers.add_parser("new-cert", help="Request a certificate for a domain")
    new_cert.add_argument("domain", help="Domain name, e.g. example.com")

    revoke = subparsers.add_parser("revoke-cert", help="Revoke a certificate")
    revoke.add_argument("certificate", help="Path to the PEM certificate")

    return parser


def _print_error(message: str) -> None:
    """Print a user-facing error to stderr."""
    print(f"error: {message}", file=sys.stderr)  # noqa: T201


def main(argv: list[str] | None = None) -> None:
    """CLI entry point.  Parses arguments, loads config, runs the command."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None and not args.validate_only:
        parser.print_help(sys.stderr)
        sys.exit(2)

    # -- bootstrap logging early (basic stderr until config is loaded) ---
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    # -- load & validate config ---
    from acmer53.config import Acmer53Config, ConfigValidationError

    try:
        if args.config is not None:
            config_path = Path(args.config).expanduser()
            if not config_path.is_file():
                _print_error(f"configuration file not found: {config_path}")
                sys.exit(1)
            config = Acmer53Config(config_file=config_path)
        else:
            config = Acmer53Config.from_defaults()
    except ConfigValidationError as exc:
        _print_error(str(exc))
        sys.exit(1)

    # -- replace bootstrap logging with configured logging ---
    from acmer53.logging import configure_logging

    verbose = args.debug or args.verbose
    configure_logging(
        config.settings.logging,
        level_override="DEBUG" if verbose else None,
    )

    if args.validate_only:
        _print_settings_summary(config)
        sys.exit(0)

    from acmer53.core.errors import AcmeClientError

    try:
        _dispatch(config, args)
    except AcmeClientError as exc:
        if args.debug:
            raise
        _print_error(exc.describe())
        sys.exit(1)
    except KeyboardInterrupt:
        _print_error("interrupted")
        sys.exit(130)


def _dispatch(config, args) -> None:
    command = args.command

    if command == "setup":
        from acmer53.cli.commands.setup import run_setup

        run_setup(config, args)
    elif command == "new-cert":
        from acmer53.cli.commands.certificate import run_new_cert

        run_new_cert(config, args)
    elif command == "revoke-cert":
        from acmer53.cli.commands.certificate import run_revoke_cert

        run_revoke_cert(config, args)


def _print_settings_summary(config) -> None:
    """Print a short summary of the loaded configuration."""
    s = config.settings
    print(f"ca:       {s.ca.url}")  # noqa: T201
    print(f"storage:  {s.storage.config_dir}")  # noqa: T201
    print(f"dns:      {s.dns.provider} (ttl {s.dns.record_ttl})")  # noqa: T201
    print(  # noqa: T201
        f"polling:  validation {'on' if s.challenge.poll_validation else 'off'}, "
        f"propagation timeout {s.dns.propagation.timeout_seconds:g}s",
    )
