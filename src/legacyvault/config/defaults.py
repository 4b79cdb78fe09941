"""Protocol constants used to seed configuration defaults."""

# Shares produced per split and the quorum needed to rebuild the key
TOTAL_SHARES = 5
THRESHOLD = 3

# Wrapped shares stored on the vault (the rest stay off-ledger:
# one handed to the heir, one published to the blob store)
ON_LEDGER_SHARES = 3
OFF_LEDGER_SHARES = 2

SYMMETRIC_KEY_BYTES = 32

DEFAULT_HOME = "~/.legacyvault"
