"""
zpass command line.

Usage:
    zpass vault add personal
    zpass vault list
    zpass vault default personal
    zpass vault passwd [personal]
    zpass vault export [personal] > personal.json
    zpass vault import restored personal.json
    zpass vault delete personal --yes

    zpass password add -d example.com -u alice -l 24 -c alphanumeric
    zpass password get -d example.com [-u alice] [-l 24] [--version 2] [--print]
    zpass password bump -d example.com -u alice
    zpass password default -d example.com -u alice
    zpass password list

Global options: --home DIR (instead of ZPASS_HOME), --vault NAME (instead of
the default vault), -v for debug logging.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

import pyperclip

from zpass.core.exceptions import PreferenceNotFoundError, VaultExistsError, ZPassError
from zpass.core.models import PasswordRequest
from zpass.core.preferences import Preference
from zpass.core.settings import Settings
from zpass.frontend.cli.clipboard import copy_to_clipboard
from zpass.frontend.cli.context import AppContext, build_context
from zpass.frontend.cli.logging_config import configure_logging
from zpass.frontend.cli.prompt import read_passphrase
from zpass.security.codec import deserialize

logger = logging.getLogger(__name__)


def _non_negative(value: str) -> int:
    number = int(value)
    if number < 0:
        raise argparse.ArgumentTypeError("must be a non-negative integer")
    return number


def _vault_name(ctx: AppContext, name: Optional[str]) -> str:
    """Explicit name, then --vault, then the store default."""
    name = name or ctx.vault_name or ctx.store.default_name()
    if name is None:
        raise ZPassError("No vault yet; create one with 'zpass vault add NAME'")
    return name


# ------------------------------------------------------------------
# vault commands
# ------------------------------------------------------------------


def cmd_vault_add(ctx: AppContext, args) -> int:
    # validate the name before asking for anything
    ctx.store.vault_dir(args.name)
    if ctx.store.exists(args.name):
        raise VaultExistsError(f"Vault {args.name!r} already exists.")
    passphrase = read_passphrase("Passphrase: ", confirm=True)
    vault = ctx.manager.create(passphrase)
    ctx.store.add(args.name, vault)
    print(f"Created vault {args.name!r}.")
    return 0


def cmd_vault_list(ctx: AppContext, args) -> int:
    default = ctx.store.default_name()
    for name in ctx.store.names():
        marker = "*" if name == default else " "
        print(f"{marker} {name}")
    return 0


def cmd_vault_default(ctx: AppContext, args) -> int:
    ctx.store.set_default(args.name)
    print(f"Default vault is now {args.name!r}.")
    return 0


def cmd_vault_passwd(ctx: AppContext, args) -> int:
    name = _vault_name(ctx, args.name)
    vault = ctx.store.load(name)
    session = ctx.manager.unlock(vault, read_passphrase("Current passphrase: "))
    try:
        new_passphrase = read_passphrase("New passphrase: ", confirm=True)
        ctx.store.save(name, ctx.manager.change_passphrase(session, new_passphrase))
    finally:
        ctx.manager.lock(session)
    print(f"Passphrase of vault {name!r} changed.")
    return 0


def cmd_vault_export(ctx: AppContext, args) -> int:
    name = _vault_name(ctx, args.name)
    sys.stdout.write(ctx.store.read_bytes(name).decode("utf-8"))
    return 0


def cmd_vault_import(ctx: AppContext, args) -> int:
    if args.file == "-":
        raw = sys.stdin.buffer.read()
    else:
        try:
            raw = Path(args.file).read_bytes()
        except OSError as e:
            raise ZPassError(f"Cannot read {args.file}: {e.strerror}") from e
    ctx.store.add(args.name, deserialize(raw))
    print(f"Imported vault {args.name!r}.")
    return 0


def cmd_vault_delete(ctx: AppContext, args) -> int:
    if not args.yes:
        raise ZPassError(
            f"Deleting vault {args.name!r} destroys its secret key; pass --yes to confirm"
        )
    ctx.store.delete(args.name)
    print(f"Deleted vault {args.name!r}.")
    return 0


# ------------------------------------------------------------------
# password commands
# ------------------------------------------------------------------


def cmd_password_add(ctx: AppContext, args) -> int:
    name = _vault_name(ctx, None)
    prefs = ctx.store.load_preferences(name)
    policy = ctx.settings.default_policy(length=args.length, charset=args.charset)
    stored = prefs.add(Preference(domain=args.domain, username=args.username, policy=policy))
    ctx.store.save_preferences(name, prefs)
    suffix = " (default for this domain)" if stored.default else ""
    print(f"Added {args.username!r} at {args.domain!r}{suffix}.")
    return 0


def cmd_password_get(ctx: AppContext, args) -> int:
    name = _vault_name(ctx, None)
    prefs = ctx.store.load_preferences(name)
    try:
        request, policy = prefs.resolve(
            args.domain, username=args.username, length=args.length, version=args.version
        )
        if args.charset is not None:
            policy = ctx.settings.default_policy(length=policy.length, charset=args.charset)
    except PreferenceNotFoundError:
        if args.username is None:
            raise
        # no stored preference: settings defaults plus whatever was given
        request = PasswordRequest(args.domain, args.username, args.version or 0)
        policy = ctx.settings.default_policy(length=args.length, charset=args.charset)

    vault = ctx.store.load(name)
    with ctx.manager.unlock(vault, read_passphrase()) as session:
        password = session.derive(request, policy)

    if args.print:
        print(password)
        return 0
    try:
        copy_to_clipboard(password)
    except pyperclip.PyperclipException as e:
        logger.debug("clipboard unavailable: %s", e)
        raise ZPassError("Clipboard unavailable; rerun with --print") from e
    print(f"Password for {request.username!r} at {request.domain!r} copied to clipboard.")
    return 0


def cmd_password_bump(ctx: AppContext, args) -> int:
    name = _vault_name(ctx, None)
    prefs = ctx.store.load_preferences(name)
    version = prefs.bump_version(args.domain, args.username)
    ctx.store.save_preferences(name, prefs)
    print(f"{args.username!r} at {args.domain!r} is now at version {version}.")
    return 0


def cmd_password_default(ctx: AppContext, args) -> int:
    name = _vault_name(ctx, None)
    prefs = ctx.store.load_preferences(name)
    prefs.set_default(args.domain, args.username)
    ctx.store.save_preferences(name, prefs)
    print(f"{args.username!r} is now the default user for {args.domain!r}.")
    return 0


def cmd_password_list(ctx: AppContext, args) -> int:
    name = _vault_name(ctx, None)
    for p in ctx.store.load_preferences(name):
        marker = "*" if p.default else " "
        print(f"{marker} {p.domain}\t{p.username}\tv{p.version}\tlength={p.policy.length}")
    return 0


# ------------------------------------------------------------------
# parser
# ------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="zpass", description="Deterministic passwords from a passphrase-protected vault"
    )
    parser.add_argument("--home", default=None, help="vault store directory (default: ZPASS_HOME or ~/.zpass)")
    parser.add_argument("--vault", default=None, help="vault to use instead of the default one")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging on stderr")

    resources = parser.add_subparsers(dest="resource", required=True)

    vault = resources.add_parser("vault", help="manage vaults")
    vault_ops = vault.add_subparsers(dest="operation", required=True)

    p = vault_ops.add_parser("add", help="create a vault with a fresh secret key")
    p.add_argument("name")
    p.set_defaults(func=cmd_vault_add)

    p = vault_ops.add_parser("list", help="list vaults (* marks the default)")
    p.set_defaults(func=cmd_vault_list)

    p = vault_ops.add_parser("default", help="make a vault the default")
    p.add_argument("name")
    p.set_defaults(func=cmd_vault_default)

    p = vault_ops.add_parser("passwd", help="change a vault passphrase")
    p.add_argument("name", nargs="?")
    p.set_defaults(func=cmd_vault_passwd)

    p = vault_ops.add_parser("export", help="print the sealed vault document")
    p.add_argument("name", nargs="?")
    p.set_defaults(func=cmd_vault_export)

    p = vault_ops.add_parser("import", help="add a vault from an exported document")
    p.add_argument("name")
    p.add_argument("file", help="exported document, or - for stdin")
    p.set_defaults(func=cmd_vault_import)

    p = vault_ops.add_parser("delete", help="delete a vault and its secret key")
    p.add_argument("name")
    p.add_argument("--yes", action="store_true")
    p.set_defaults(func=cmd_vault_delete)

    password = resources.add_parser("password", help="derive passwords and manage site preferences")
    password_ops = password.add_subparsers(dest="operation", required=True)

    p = password_ops.add_parser("add", help="remember a site login")
    p.add_argument("-d", "--domain", required=True)
    p.add_argument("-u", "--username", required=True)
    p.add_argument("-l", "--length", type=int, default=None)
    p.add_argument("-c", "--charset", default=None, help="charset name or literal characters")
    p.set_defaults(func=cmd_password_add)

    p = password_ops.add_parser("get", help="derive a password")
    p.add_argument("-d", "--domain", required=True)
    p.add_argument("-u", "--username", default=None)
    p.add_argument("-l", "--length", type=int, default=None)
    p.add_argument("-c", "--charset", default=None)
    p.add_argument("--version", type=_non_negative, default=None)
    p.add_argument("--print", action="store_true", help="print instead of copying to the clipboard")
    p.set_defaults(func=cmd_password_get)

    p = password_ops.add_parser("bump", help="rotate a password to its next version")
    p.add_argument("-d", "--domain", required=True)
    p.add_argument("-u", "--username", required=True)
    p.set_defaults(func=cmd_password_bump)

    p = password_ops.add_parser("default", help="make a login the domain default")
    p.add_argument("-d", "--domain", required=True)
    p.add_argument("-u", "--username", required=True)
    p.set_defaults(func=cmd_password_default)

    p = password_ops.add_parser("list", help="list remembered logins")
    p.set_defaults(func=cmd_password_list)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        settings = Settings.from_env()
    except ZPassError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    configure_logging(logging.DEBUG if args.verbose else settings.log_level)
    ctx = build_context(settings, home=args.home, vault_name=args.vault)
    try:
        return args.func(ctx, args)
    except ZPassError as e:
        logger.debug("command failed", exc_info=True)
        print(f"error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
