"""Verify that the tracker's environment configuration is complete and unchanged.

Two checks are available:

1. Loading ``AppSettings`` from the given ``.env`` file, so a missing
   ``SUPABASE_URL``, ``SUPABASE_ANON_KEY`` or ``SESSION_SECRET`` is reported
   before the API starts rejecting sign-ins. Placeholder or short session
   secrets and unusable Supabase hosts are rejected as well.
2. Recording and verifying a SHA256 checksum of the ``.env`` file to catch
   unexpected edits between deploys.

Example usages::

    python -m scripts.check_env record --env-file /srv/tracker/.env \
        --hash-file /srv/tracker/.env.sha256

    python -m scripts.check_env verify --env-file /srv/tracker/.env \
        --hash-file /srv/tracker/.env.sha256
"""

from __future__ import annotations

import argparse
import hashlib
import sys
from pathlib import Path
from typing import Callable

from pydantic import ValidationError

from tracker.core.config import AppSettings, _load_env_file

EXIT_OK = 0
EXIT_VALIDATION_ERROR = 2
EXIT_CHECKSUM_ERROR = 3
EXIT_RUNTIME_ERROR = 5

MIN_SECRET_LENGTH = 16
PLACEHOLDER_SECRETS = frozenset(
    {"changeme", "change-me", "secret", "session-secret", "placeholder", "your-session-secret"}
)
LOCAL_HOSTS = frozenset({"localhost", "127.0.0.1"})


def _compute_hash(env_file: Path) -> str:
    return hashlib.sha256(env_file.read_bytes()).hexdigest()


def _validate_settings(env_file: Path) -> AppSettings:
    """Load settings from ``env_file`` and return them."""
    _load_env_file(str(env_file))
    return AppSettings()  # type: ignore[call-arg]


def _find_weak_values(settings: AppSettings) -> list[str]:
    """Return problems with values that load fine but are unsafe to deploy."""
    problems: list[str] = []

    secret = settings.session.secret.strip()
    if secret.lower() in PLACEHOLDER_SECRETS:
        problems.append("SESSION_SECRET is a placeholder value; generate a random secret.")
    elif len(secret) < MIN_SECRET_LENGTH:
        problems.append(
            f"SESSION_SECRET must be at least {MIN_SECRET_LENGTH} characters long."
        )

    host = (settings.supabase.url.host or "").lower()
    if not host or ("." not in host and host not in LOCAL_HOSTS):
        problems.append(f"SUPABASE_URL has no usable host: {settings.supabase.url}")
    elif "your-project" in host or host.startswith("<"):
        problems.append("SUPABASE_URL still points at the sample project host.")
    elif settings.supabase.url.scheme != "https" and host not in LOCAL_HOSTS:
        problems.append("SUPABASE_URL must use https outside local development.")

    return problems



def _record_checksum(env_file: Path, hash_file: Path) -> int:
    checksum = _compute_hash(env_file)
    hash_file.write_text(f"{checksum}\n", encoding="utf-8")
    print(f"Recorded checksum to {hash_file} ({checksum})")
    return EXIT_OK


def _verify_checksum(env_file: Path, hash_file: Path) -> int:
    if not hash_file.exists():
        print(
            f"Checksum file {hash_file} is missing; run 'record' first.",
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
        f"  actual:   {actual}",
        file=sys.stderr,
    )
    return EXIT_CHECKSUM_ERROR


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Validate tracker settings and detect .env drift."
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    for name, help_text, needs_hash in (
        ("record", "Validate settings and store the checksum baseline.", True),
        ("verify", "Validate settings and compare against the baseline.", True),
        ("check", "Validate settings only.", False),
    ):
        subparser = subparsers.add_parser(name, help=help_text)
        subparser.add_argument(
            "--env-file",
            default=".env",
            type=Path,
            help="Path to the environment file (default: .env).",
        )
        if needs_hash:
            subparser.add_argument(
                "--hash-file",
                required=True,
                type=Path,
                help="Location of the checksum baseline.",
            )

    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    env_file: Path = args.env_file

    if not env_file.exists():
        print(f"Environment file {env_file} does not exist.", file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    try:
        settings = _validate_settings(env_file)
    except ValidationError as exc:
        print(
            "Settings validation failed. Missing or invalid values detected:\n"
            f"{exc.json(indent=2)}",
            file=sys.stderr,
        )
        return EXIT_VALIDATION_ERROR

    problems = _find_weak_values(settings)
    if problems:
        print("Settings validation failed:", file=sys.stderr)
        for problem in problems:
            print(f"  - {problem}", file=sys.stderr)
        return EXIT_VALIDATION_ERROR

    print(f"Settings OK for Supabase project {settings.supabase.base_url}")


    handlers: dict[str, Callable[[], int]] = {
        "record": lambda: _record_checksum(env_file, args.hash_file),
        "verify": lambda: _verify_checksum(env_file, args.hash_file),
        "check": lambda: EXIT_OK,
    }
    return handlers[args.command]()


if __name__ == "__main__":  # pragma: no cover - script entry point
    sys.exit(main())
