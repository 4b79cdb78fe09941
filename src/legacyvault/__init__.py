"""LegacyVault - dead man's switch inheritance with threshold secret recovery.

An owner locks funds and an encrypted secret in a vault and proves liveness
with periodic heartbeats.  Once the owner stays silent past the configured
unlock duration, the designated beneficiary may claim the funds and rebuild
the secret from a quorum of key shares.

Key modules:

- :mod:`legacyvault.engine` - Symmetric encryption, Shamir key splitting, share wrapping
- :mod:`legacyvault.ledger` - Vault state machine, audit log and serialized ledger host
- :mod:`legacyvault.storage` - Content-addressed blob stores
- :mod:`legacyvault.config` - YAML configuration
- :mod:`legacyvault.cli` - Command line interface
"""

__version__ = "0.1.0"
