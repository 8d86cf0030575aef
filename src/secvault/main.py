#!/usr/bin/env python3
"""
secvault: local encrypted secret store.

Two layers of AES-256-GCM encryption:
- each secret value is encrypted under the value key, re-derived from the
  passphrase with Argon2id on every invocation (never written to disk);
- the whole encoded collection is encrypted under a machine-generated
  storage key kept in profile.json.

Vault layout:
  vault/
    profile.json            # profile id, storage key, value key salt, passphrase verifier
    collections/
      <profile id>.sec      # 12-byte nonce || AES-256-GCM(collection encoding)

Commands:
  init                 Create a profile and an empty collection
  add <name>           Add a secret (value from --value or stdin)
  ls                   List secrets
  get                  Show a secret by --id or --name (-d to decrypt)
  update               Update value/metadata of a secret
  rm                   Remove a secret
  rotate-key           Change passphrase, re-encrypt all secret values
  sync                 Reconcile with the secondary storage file (newest wins)
  generate             Print a random password
"""
from __future__ import annotations

import logging
import sys

from secvault.errors import SecVaultError
from secvault.ui.cli import build_parser


def main():
    parser = build_parser()
    args = parser.parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        args.func(args)
    except SecVaultError as err:
        print(f"[!] {err}")
        sys.exit(1)


if __name__ == "__main__":
    main()
