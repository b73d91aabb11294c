"""Validate the integration service configuration and detect ``.env`` drift.

Commands::

    # Validate settings and store the checksum baseline.
    python -m scripts.check_env record --env-file /srv/mercado-livre/.env \
        --hash-file /srv/mercado-livre/.env.sha256

    # Run later (e.g. from cron/systemd) to alert on drift.
    python -m scripts.check_env verify --env-file /srv/mercado-livre/.env \
        --hash-file /srv/mercado-livre/.env.sha256

    # Print the redirect URI to register in the Mercado Livre developer panel.
    python -m scripts.check_env redirect-uri --env-file .env
"""

from __future__ import annotations

import argparse
import hashlib
import sys
from pathlib import Path
from typing import Callable

from pydantic import ValidationError

from app.core.config import AppSettings, _load_env_file

EXIT_OK = 0
EXIT_VALIDATION_ERROR = 2
EXIT_CHECKSUM_ERROR = 3
EXIT_RUNTIME_ERROR = 5


class ConfigurationProblem(Exception):
    """Settings load but cannot drive the OAuth flow."""


def _compute_hash(env_file: Path) -> str:
    return hashlib.sha256(env_file.read_bytes()).hexdigest()


def _load_settings(env_file: Path) -> AppSettings:
    """Build ``AppSettings`` from ``env_file`` and sanity-check OAuth inputs."""
    _load_env_file(str(env_file))
    settings = AppSettings()  # type: ignore[call-arg]
    if not settings.frontend_url.startswith(("http://", "https://")):
        raise ConfigurationProblem(
            "FRONTEND_URL must be an absolute http(s) URL; "
            f"got {settings.frontend_url!r}. OAuth redirects would be relative."
        )
    return settings


def _record_checksum(env_file: Path, hash_file: Path) -> int:
    checksum = _compute_hash(env_file)
    hash_file.write_text(f"{checksum}\n", encoding="utf-8")
    print(f"Recorded checksum to {hash_file} ({checksum})")
    return EXIT_OK


def _verify_checksum(env_file: Path, hash_file: Path) -> int:
    """Compare the current checksum to the recorded baseline."""
    if not hash_file.exists():
        print(
            f"Expected checksum file {hash_file} is missing. "
            "Re-run with the 'record' command to establish a baseline.",
            file=sys.stderr,
        )
        return EXIT_RUNTIME_ERROR

    expected = hash_file.read_text(encoding="utf-8").strip()
    actual = _compute_hash(env_file)
    if expected == actual:
        print("Environment checksum OK.")
        return EXIT_OK

    print(
        "Environment checksum mismatch!\n"
        f"  expected: {expected}\n"
        f"  actual:   {actual}\n"
        "Mercado Livre credentials may have changed; confirm before restarting.",
        file=sys.stderr,
    )
    return EXIT_CHECKSUM_ERROR


def _print_redirect_uri(settings: AppSettings) -> int:
    print(settings.redirect_uri)
    return EXIT_OK


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Validate Mercado Livre integration settings and detect .env drift."
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_env_argument(subparser: argparse.ArgumentParser) -> None:
        subparser.add_argument(
            "--env-file",
            default=".env",
            type=Path,
            help="Path to the environment file (default: .env in the repo root).",
        )

    def add_hash_argument(subparser: argparse.ArgumentParser, help_text: str) -> None:
        subparser.add_argument("--hash-file", required=True, type=Path, help=help_text)

    record_parser = subparsers.add_parser(
        "record", help="Validate settings and store the checksum baseline."
    )
    add_env_argument(record_parser)
    add_hash_argument(record_parser, "Location to write the checksum baseline.")

    verify_parser = subparsers.add_parser(
        "verify", help="Validate settings and compare the checksum with the baseline."
    )
    add_env_argument(verify_parser)
    add_hash_argument(verify_parser, "Location of the recorded checksum baseline.")

    add_env_argument(
        subparsers.add_parser("check", help="Validate settings only.")
    )
    add_env_argument(
        subparsers.add_parser(
            "redirect-uri", help="Print the OAuth redirect URI derived from FRONTEND_URL."
        )
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    env_file: Path = args.env_file

    if not env_file.exists():
        print(
            f"Environment file {env_file} does not exist. "
            "Ensure the path is correct or create it before running this tool.",
            file=sys.stderr,
        )
        return EXIT_RUNTIME_ERROR

    try:
        settings = _load_settings(env_file)
    except ValidationError as exc:
        print(
            "Settings validation failed. Missing or invalid values detected:\n"
            f"{exc.json(indent=2)}",
            file=sys.stderr,
        )
        return EXIT_VALIDATION_ERROR
    except ConfigurationProblem as exc:
        print(str(exc), file=sys.stderr)
        return EXIT_VALIDATION_ERROR
    except Exception as exc:  # pylint: disable=broad-except
        print(f"Unexpected error during validation: {exc}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    handlers: dict[str, Callable[[], int]] = {
        "record": lambda: _record_checksum(env_file, args.hash_file),
        "verify": lambda: _verify_checksum(env_file, args.hash_file),
        "check": lambda: EXIT_OK,
        "redirect-uri": lambda: _print_redirect_uri(settings),
    }
    return handlers[args.command]()


if __name__ == "__main__":  # pragma: no cover - script entry point
    sys.exit(main())
