import argparse

from secvault.utils.core import cmd_add, cmd_generate, cmd_get, cmd_init, cmd_ls
from secvault.utils.dataModels import DEFAULT_GENERATED_LENGTH
from secvault.utils.maintain import cmd_rm, cmd_rotate_key, cmd_sync, cmd_update

SECRET_TYPES = ["generic", "credential", "note", "file"]


def _add_selector(p: argparse.ArgumentParser) -> None:
    p.add_argument("-i", "--id", help="Secret id (UUID)")
    p.add_argument("-n", "--name", help="Secret name")


def _add_fields(p: argparse.ArgumentParser, type_default: str | None) -> None:
    p.add_argument("-v", "--value", help="Secret value. Read from stdin when omitted")
    p.add_argument("--display-name", help="Display name")
    p.add_argument("--type", choices=SECRET_TYPES, default=type_default)
    p.add_argument("--label", action="append", help="Label (repeatable)")
    p.add_argument("--tag", action="append", help="Tag as key=value (repeatable)")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Local encrypted secret store")
    p.add_argument("--verbose", action="store_true", help="Enable debug logging")
    sub = p.add_subparsers(dest="cmd", required=True)

    p_init = sub.add_parser("init", help="Initialize a vault")
    p_init.add_argument("repo", help="Path to vault directory")
    p_init.add_argument("--passphrase", required=True)
    p_init.add_argument("--name", help="Profile name (default: directory name)")
    p_init.add_argument("--secondary", help="Path to a secondary storage file")
    p_init.add_argument("--force", action="store_true", help="Overwrite an existing profile")
    p_init.set_defaults(func=cmd_init)

    p_add = sub.add_parser("add", help="Add a secret")
    p_add.add_argument("repo", help="Path to vault directory")
    p_add.add_argument("name", help="Secret name")
    p_add.add_argument("--passphrase", required=True)
    _add_fields(p_add, "generic")
    p_add.set_defaults(func=cmd_add)

    p_ls = sub.add_parser("ls", help="List secrets")
    p_ls.add_argument("repo", help="Path to vault directory")
    p_ls.add_argument("--passphrase", required=True)
    p_ls.set_defaults(func=cmd_ls)

    p_get = sub.add_parser("get", help="Show a secret")
    p_get.add_argument("repo", help="Path to vault directory")
    p_get.add_argument("--passphrase", required=True)
    _add_selector(p_get)
    p_get.add_argument("-d", "--decrypt", action="store_true", help="Print the decrypted value")
    p_get.set_defaults(func=cmd_get)

    p_upd = sub.add_parser("update", help="Update a secret")
    p_upd.add_argument("repo", help="Path to vault directory")
    p_upd.add_argument("--passphrase", required=True)
    _add_selector(p_upd)
    _add_fields(p_upd, None)
    p_upd.set_defaults(func=cmd_update)

    p_rm = sub.add_parser("rm", help="Remove a secret")
    p_rm.add_argument("repo", help="Path to vault directory")
    p_rm.add_argument("--passphrase", required=True)
    _add_selector(p_rm)
    p_rm.set_defaults(func=cmd_rm)

    p_rot = sub.add_parser("rotate-key", help="Change passphrase and re-encrypt all secrets")
    p_rot.add_argument("repo", help="Path to vault directory")
    p_rot.add_argument("--passphrase", required=True, help="Current passphrase")
    p_rot.add_argument("--new-passphrase", required=True, help="New passphrase")
    p_rot.set_defaults(func=cmd_rotate_key)

    p_sync = sub.add_parser("sync", help="Sync with the secondary storage")
    p_sync.add_argument("repo", help="Path to vault directory")
    p_sync.add_argument("--passphrase", required=True)
    p_sync.add_argument("--secondary", help="Set the secondary storage file before syncing")
    p_sync.set_defaults(func=cmd_sync)

    p_gen = sub.add_parser("generate", help="Generate a random password")
    p_gen.add_argument("-l", "--length", type=int, default=DEFAULT_GENERATED_LENGTH)
    p_gen.add_argument("--no-special-characters", action="store_true", help="Omit special characters")
    p_gen.set_defaults(func=cmd_generate)

    return p
