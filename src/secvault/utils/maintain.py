import argparse
import base64

from pathlib import Path

from secvault.crypto.hash import derive_key_from_password
from secvault.errors import SecVaultError
from secvault.storage.vault import commit_profile, load_profile, save_profile, stage_profile
from secvault.utils.core import get_secret, parse_tags, read_value, unlock
from secvault.utils.helper import repo_paths
from secvault.vault.secret import SecretType, SecretUpdate


def cmd_update(args: argparse.Namespace) -> None:
    handler, _ = unlock(Path(args.repo), args.passphrase)
    secret = get_secret(handler, args)
    update = SecretUpdate(
        display_name=args.display_name,
        value=read_value(args) or None,
        type=SecretType[args.type.upper()] if args.type else None,
        labels=args.label,
        tags=parse_tags(args.tag),
    )
    handler.update_secret_by_id(secret.id, update)
    print(f"[+] Updated {secret.name}")


def cmd_rm(args: argparse.Namespace) -> None:
    handler, _ = unlock(Path(args.repo), args.passphrase)
    secret = get_secret(handler, args)
    handler.delete_secret_by_id(secret.id)
    print(f"[+] Removed id={secret.id}")


def cmd_rotate_key(args: argparse.Namespace) -> None:
    """Change the passphrase and re-encrypt every secret value.

    Steps:
      1) Unlock with the current passphrase.
      2) Derive a new value key (fresh salt) and a new verifier.
      3) Stage the profile with the new salt and verifier.
      4) Re-encrypt all secrets under the new key and save the collection.
      5) Promote the staged profile.
    The storage key is left as is. If step 5 fails the staged profile is
    left in place, so the new salt is never lost.
    """
    repo = Path(args.repo)
    profile_path = repo_paths(repo)["profile"]
    handler, profile = unlock(repo, args.passphrase)

    new_key = derive_key_from_password(args.new_passphrase)
    new_verifier = derive_key_from_password(args.new_passphrase)
    profile.key_salt = base64.b64encode(new_key.salt).decode("ascii")
    profile.verifier = new_verifier.encode().decode("ascii")
    staged = stage_profile(profile_path, profile)

    try:
        handler.update_key(new_key)
    except SecVaultError:
        staged.unlink(missing_ok=True)
        raise
    commit_profile(staged, profile_path)
    print(f"[+] Key rotated for {len(handler.collection)} secret(s).")


def cmd_sync(args: argparse.Namespace) -> None:
    repo = Path(args.repo)
    if args.secondary:
        # Persist the secondary location before syncing against it.
        profile = load_profile(repo_paths(repo)["profile"])
        profile.secondary = args.secondary
        save_profile(repo_paths(repo)["profile"], profile)

    handler, profile = unlock(repo, args.passphrase)
    if not profile.secondary:
        print("[!] No secondary storage configured (use --secondary PATH)")
        return
    handler.sync()
    print(f"[+] Synced with {profile.secondary}")
