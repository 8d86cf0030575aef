import argparse
import base64
import json
import sys

from pathlib import Path
from typing import Dict, List, Tuple

from secvault.crypto.hash import (
    Key,
    compare_password_to_key,
    derive_key,
    derive_key_from_password,
    derive_random_key,
)
from secvault.errors import InvalidKeyError, ValidationError
from secvault.storage.vault import FileStorage, load_profile, save_profile
from secvault.utils.dataModels import MIN_GENERATED_LENGTH, Profile
from secvault.utils.helper import new_uuid, repo_paths
from secvault.vault.handler import Handler
from secvault.vault.secret import Secret, SecretOptions, SecretType, generate_password


def cmd_init(args: argparse.Namespace) -> None:
    repo = Path(args.repo)
    p = repo_paths(repo)

    if p["profile"].exists() and not args.force:
        print(f"[!] {p['profile']} exists. Use --force to overwrite.")
        sys.exit(1)

    storage_key = derive_random_key()
    key = derive_key_from_password(args.passphrase)
    verifier = derive_key_from_password(args.passphrase)

    profile = Profile(
        id=new_uuid(),
        name=args.name or repo.name,
        storage_key=storage_key.encode().decode("ascii"),
        key_salt=base64.b64encode(key.salt).decode("ascii"),
        verifier=verifier.encode().decode("ascii"),
        secondary=args.secondary,
    )

    # Empty collection, encrypted under the storage key
    storage = FileStorage(repo_paths(repo, profile.id)["collection"])
    Handler(profile.id, storage_key, key, storage).save()
    save_profile(p["profile"], profile)
    print(f"[+] Initialized vault at {repo} (profile {profile.id})")


def unlock(repo: Path, passphrase: str) -> Tuple[Handler, Profile]:
    profile = load_profile(repo_paths(repo)["profile"])
    if not compare_password_to_key(passphrase, Key.decode(profile.verifier)):
        raise InvalidKeyError("invalid passphrase")

    salt = base64.b64decode(profile.key_salt)
    key = Key(value=derive_key(passphrase, salt), salt=salt)
    secondary = FileStorage(profile.secondary) if profile.secondary else None
    handler = Handler(
        profile.id,
        Key.decode(profile.storage_key),
        key,
        FileStorage(repo_paths(repo, profile.id)["collection"]),
        secondary_storage=secondary,
        load_collection=True,
    )
    return handler, profile


def read_value(args: argparse.Namespace) -> str | None:
    """Value from --value, else from a stdin pipe, else None."""
    if args.value is not None:
        return args.value
    if not sys.stdin.isatty():
        return sys.stdin.read().rstrip("\r\n")
    return None


def parse_tags(pairs: List[str] | None) -> Dict[str, str] | None:
    if pairs is None:
        return None
    tags = {}
    for pair in pairs:
        k, sep, v = pair.partition("=")
        if not sep or not k:
            raise ValidationError(f"tag must be key=value, got {pair!r}")
        tags[k] = v
    return tags


def get_secret(handler: Handler, args: argparse.Namespace) -> Secret:
    if args.id and not args.name:
        return handler.get_secret_by_id(args.id)
    if args.name and not args.id:
        return handler.get_secret_by_name(args.name)
    raise ValidationError("exactly one of --id or --name must be provided")


def cmd_add(args: argparse.Namespace) -> None:
    handler, _ = unlock(Path(args.repo), args.passphrase)
    value = read_value(args)
    if value is None:
        print("[!] No value provided (use --value or pipe it on stdin)")
        sys.exit(1)

    options = SecretOptions(
        display_name=args.display_name or "",
        type=SecretType[args.type.upper()],
        labels=args.label,
        tags=parse_tags(args.tag),
    )
    secret = handler.add_secret(args.name, value, options)
    print(f"[+] Added {secret.name} as id={secret.id}")


def cmd_ls(args: argparse.Namespace) -> None:
    handler, _ = unlock(Path(args.repo), args.passphrase)
    secrets = handler.list_secrets()
    if not secrets:
        print("(empty)")
        return
    for s in secrets:
        print(f"{s.id}\t{s.name}\t{s.type!s}\t{s.updated or s.created}")


def cmd_get(args: argparse.Namespace) -> None:
    handler, _ = unlock(Path(args.repo), args.passphrase)
    secret = get_secret(handler, args)
    if args.decrypt:
        print(secret.decrypt().decode("utf-8"))
        return
    print(json.dumps(secret.to_dict(), ensure_ascii=False, indent=2))


def cmd_generate(args: argparse.Namespace) -> None:
    if args.length < MIN_GENERATED_LENGTH:
        print(f"[!] A minimum of {MIN_GENERATED_LENGTH} characters must be specified")
        sys.exit(1)
    print(generate_password(args.length, not args.no_special_characters))
