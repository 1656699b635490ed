#!/usr/bin/env python3
"""
SecretBin CLI — End-to-end encrypted secret sharing. AES-256-GCM + PBKDF2-SHA512.

Usage:
    cli.py submit --message "secret" [--file report.pdf] [--password pw] [--expires 1d] [--burn-after 1]
    cli.py info
    cli.py password [--length 24] [--no-symbols]

The server endpoint comes from --endpoint or $SECRETBIN_ENDPOINT.
"""

import argparse
import logging
import os
import sys

import httpx

from secretbin import Client, Options, Secret, SecretBinError
from secretbin import PasswordOptions, generate_password

ENDPOINT_ENV = 'SECRETBIN_ENDPOINT'


def setup_logging(debug: bool):
    level = logging.DEBUG if debug else logging.WARNING
    if not logging.getLogger().handlers:
        logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")
    logging.getLogger('secretbin').setLevel(level)


def non_negative_int(value: str) -> int:
    """argparse type for counts that may be 0 but not negative."""
    try:
        n = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid integer: {value!r}")
    if n < 0:
        raise argparse.ArgumentTypeError(f"must be >= 0, got {n}")
    return n


def connect(args) -> Client:
    endpoint = args.endpoint or os.environ.get(ENDPOINT_ENV)
    if not endpoint:
        raise SystemExit(f"Error: no endpoint given (use --endpoint or ${ENDPOINT_ENV})")
    return Client(endpoint)


def cmd_submit(args):
    """Encrypt and submit a new secret."""
    secret = Secret()

    if args.message:
        secret.message = args.message
    elif not args.file:
        # Read from stdin
        secret.message = sys.stdin.read()

    for path in args.file or []:
        try:
            secret.add_file_attachment(path)
        except OSError as e:
            print(f"Error: cannot read {path}: {e}", file=sys.stderr)
            return 1

    if not secret.message and not secret.attachments:
        print("Error: empty secret", file=sys.stderr)
        return 1

    options = Options(
        password=args.password or '',
        expires=args.expires or '',
        burn_after=args.burn_after,
    )

    with connect(args) as client:
        url = client.submit_secret(secret, options)

    print(url)
    return 0


def cmd_info(args):
    """Show what a SecretBin server offers."""
    with connect(args) as client:
        config = client.config

    print(f"Name:      {config.name}")
    print(f"Endpoint:  {config.endpoint}")
    print(f"Version:   {config.version}")
    print(f"Encoding:  {'compact (CBOR)' if config.compact_encoding else 'legacy (JSON)'}")

    if config.banner:
        print(f"Banner:    [{config.banner.type}] {config.banner.text}")

    print("\nExpiration options:")
    for name, expires in config.expires_sorted():
        marker = ' (default)' if name == config.default_expires else ''
        print(f"  {name:<8} {expires}{marker}")

    return 0


def cmd_password(args):
    """Generate a random password."""
    options = PasswordOptions(
        uppercase=not args.no_uppercase,
        lowercase=not args.no_lowercase,
        digits=not args.no_digits,
        symbols=not args.no_symbols,
        length=args.length,
    )
    try:
        print(generate_password(options))
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


def main(argv=None):
    parser = argparse.ArgumentParser(
        description='SecretBin — End-to-end encrypted secret sharing.',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Share a message, readable once, for one day
  %(prog)s --endpoint https://secretbin.example.com submit -m "db password" --expires 1d --burn-after 1

  # Share files with an extra password
  %(prog)s submit -f report.pdf -f notes.txt --password "$(%(prog)s password)"

  # List the server's expiration options
  %(prog)s info
        """
    )
    parser.add_argument('--endpoint', '-e', help=f'SecretBin server URL (default: ${ENDPOINT_ENV})')
    parser.add_argument('--debug', action='store_true', help='Enable debug logging')

    sub = parser.add_subparsers(dest='command', help='Command')

    # Submit
    p_submit = sub.add_parser('submit', help='Encrypt and submit a secret')
    p_submit.add_argument('--message', '-m', help='Text message (default: read stdin)')
    p_submit.add_argument('--file', '-f', action='append', help='File to attach (repeatable)')
    p_submit.add_argument('--password', '-p', help='Additional password')
    p_submit.add_argument('--expires', '-x', help='Expiration option (default: server default)')
    p_submit.add_argument('--burn-after', '-b', type=non_negative_int, default=0,
                          help='Delete after this many reads (default: 0, never)')

    # Info
    sub.add_parser('info', help='Show server information')

    # Password
    p_password = sub.add_parser('password', help='Generate a random password')
    p_password.add_argument('--length', '-l', type=int, default=16, help='Password length (default: 16)')
    p_password.add_argument('--no-uppercase', action='store_true', help='Exclude uppercase letters')
    p_password.add_argument('--no-lowercase', action='store_true', help='Exclude lowercase letters')
    p_password.add_argument('--no-digits', action='store_true', help='Exclude digits')
    p_password.add_argument('--no-symbols', action='store_true', help='Exclude symbols')

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    setup_logging(args.debug)

    handlers = {
        'submit': cmd_submit,
        'info': cmd_info,
        'password': cmd_password,
    }

    try:
        return handlers[args.command](args)
    except SecretBinError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except httpx.HTTPError as e:
        print(f"Error: request failed: {e}", file=sys.stderr)
        return 1
    except ValueError as e:
        # Bad option values or an unparseable server response
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
