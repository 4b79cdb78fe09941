"""SQLite persistence for vaults, the audit log and payouts.

Schema Design:
- vaults: current state of every live or claimed vault (cancelled vaults are deleted)
- vault_events: append-only audit log, ordered by ``sequence``
- payouts: balance released by claims and cancellations (amounts are decimal
  text, since balances have no upper bound)

A committed transition writes its vault row, its event and its payout in a
single database transaction, and vault updates are conditional on the
version the transition was computed from.
"""

import json
import logging
import sqlite3
from pathlib import Path

from legacyvault.ledger.models import (
    EventKind,
    Payout,
    TransitionResult,
    Vault,
    VaultEvent,
    VaultStatus,
)

logger = logging.getLogger(__name__)


class StaleWriteError(Exception):
    """The vault row changed since the transition read it."""


class LedgerStore:
    """SQLite-backed ledger storage.

    Holds one connection for the lifetime of the store; callers serialize
    access (see :class:`legacyvault.ledger.host.VaultLedger`).
    """

    SCHEMA_VERSION = 1

    def __init__(self, db_path: str | Path = ":memory:"):
        """Open (and create if needed) the ledger database.

        Args:
            db_path: Path to SQLite database file, or ``":memory:"``
        """
        if str(db_path) == ":memory:":
            self.db_path = ":memory:"
        else:
            path = Path(db_path).expanduser()
            path.parent.mkdir(parents=True, exist_ok=True)
            self.db_path = str(path)

        self._conn = sqlite3.connect(self.db_path, timeout=30.0, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        if self.db_path != ":memory:":
            self._conn.execute("PRAGMA journal_mode=WAL")
        self._initialize_schema()

    def _initialize_schema(self) -> None:
        with self._conn:
            self._conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS vaults (
                    vault_id TEXT PRIMARY KEY,
                    version INTEGER NOT NULL,
                    status TEXT NOT NULL,
                    owner TEXT NOT NULL,
                    beneficiary TEXT NOT NULL,
                    data TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_vaults_owner ON vaults(owner);
                CREATE INDEX IF NOT EXISTS idx_vaults_beneficiary ON vaults(beneficiary);

                CREATE TABLE IF NOT EXISTS vault_events (
                    sequence INTEGER PRIMARY KEY AUTOINCREMENT,
                    event_id TEXT NOT NULL UNIQUE,
                    vault_id TEXT NOT NULL,
                    kind TEXT NOT NULL,
                    actor TEXT NOT NULL,
                    timestamp INTEGER NOT NULL,
                    data TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_events_vault ON vault_events(vault_id);
                CREATE INDEX IF NOT EXISTS idx_events_kind ON vault_events(kind);

                CREATE TABLE IF NOT EXISTS payouts (
                    payout_id INTEGER PRIMARY KEY AUTOINCREMENT,
                    vault_id TEXT NOT NULL,
                    recipient TEXT NOT NULL,
                    amount TEXT NOT NULL,
                    timestamp INTEGER NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_payouts_recipient ON payouts(recipient);

                CREATE TABLE IF NOT EXISTS ledger_metadata (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                );
                """
            )
            self._conn.execute(
                "INSERT OR IGNORE INTO ledger_metadata (key, value) VALUES ('schema_version', ?)",
                (str(self.SCHEMA_VERSION),),
            )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def commit(self, result: TransitionResult, expected_version: int) -> VaultEvent:
        """Persist a successful transition atomically.

        Args:
            result: Successful transition result.
            expected_version: Version of the stored vault the transition was
                computed from (0 for creation).

        Returns:
            The stored event, with its ``sequence`` assigned.

        Raises:
            ValueError: If *result* is not a successful transition.
            StaleWriteError: If the stored vault no longer has *expected_version*.
        """
        if not result.success or result.vault is None or result.event is None:
            raise ValueError("Only successful transitions can be committed")

        vault = result.vault
        with self._conn:
            if expected_version == 0:
                cursor = self._conn.execute(
                    "INSERT OR IGNORE INTO vaults "
                    "(vault_id, version, status, owner, beneficiary, data) "
                    "VALUES (?, ?, ?, ?, ?, ?)",
                    self._vault_row(vault),
                )
            elif vault.status == VaultStatus.CANCELLED:
                cursor = self._conn.execute(
                    "DELETE FROM vaults WHERE vault_id = ? AND version = ?",
                    (vault.vault_id, expected_version),
                )
            else:
                row = self._vault_row(vault)
                cursor = self._conn.execute(
                    "UPDATE vaults SET version = ?, status = ?, owner = ?, beneficiary = ?, "
                    "data = ? WHERE vault_id = ? AND version = ?",
                    (*row[1:], vault.vault_id, expected_version),
                )

            if cursor.rowcount != 1:
                raise StaleWriteError(
                    f"Vault {vault.vault_id} is no longer at version {expected_version}"
                )

            event = result.event
            cursor = self._conn.execute(
                "INSERT INTO vault_events (event_id, vault_id, kind, actor, timestamp, data) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (
                    event.event_id,
                    event.vault_id,
                    event.kind.value,
                    event.actor,
                    event.timestamp,
                    event.model_dump_json(exclude={"sequence"}),
                ),
            )
            stored = event.model_copy(update={"sequence": cursor.lastrowid})

            if result.payout is not None:
                payout = result.payout
                self._conn.execute(
                    "INSERT INTO payouts (vault_id, recipient, amount, timestamp) "
                    "VALUES (?, ?, ?, ?)",
                    (payout.vault_id, payout.recipient, str(payout.amount), payout.timestamp),
                )

        return stored

    @staticmethod
    def _vault_row(vault: Vault) -> tuple:
        return (
            vault.vault_id,
            vault.version,
            vault.status.value,
            vault.owner,
            vault.beneficiary,
            vault.model_dump_json(),
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_vault(self, vault_id: str) -> Vault | None:
        """Load a vault, or None if it never existed or was cancelled."""
        row = self._conn.execute(
            "SELECT data FROM vaults WHERE vault_id = ?", (vault_id,)
        ).fetchone()
        return Vault.model_validate_json(row["data"]) if row else None

    def list_vaults(
        self,
        owner: str | None = None,
        beneficiary: str | None = None,
        status: VaultStatus | None = None,
    ) -> list[Vault]:
        """List stored vaults matching every given filter."""
        query = "SELECT data FROM vaults WHERE 1=1"
        params: list = []
        if owner is not None:
            query += " AND owner = ?"
            params.append(owner)
        if beneficiary is not None:
            query += " AND beneficiary = ?"
            params.append(beneficiary)
        if status is not None:
            query += " AND status = ?"
            params.append(status.value)
        query += " ORDER BY rowid"

        rows = self._conn.execute(query, params).fetchall()
        return [Vault.model_validate_json(row["data"]) for row in rows]

    def get_events(
        self,
        vault_id: str | None = None,
        kind: EventKind | None = None,
        actor: str | None = None,
        limit: int | None = None,
    ) -> list[VaultEvent]:
        """Query the audit log in commit order."""
        query = "SELECT sequence, data FROM vault_events WHERE 1=1"
        params: list = []
        if vault_id is not None:
            query += " AND vault_id = ?"
            params.append(vault_id)
        if kind is not None:
            query += " AND kind = ?"
            params.append(kind.value)
        if actor is not None:
            query += " AND actor = ?"
            params.append(actor)
        query += " ORDER BY sequence"
        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)

        events = []
        for row in self._conn.execute(query, params).fetchall():
            data = json.loads(row["data"])
            data["sequence"] = row["sequence"]
            events.append(VaultEvent.model_validate(data))
        return events

    def get_payouts(self, recipient: str | None = None) -> list[Payout]:
        """List payouts, optionally for one recipient."""
        query = "SELECT vault_id, recipient, amount, timestamp FROM payouts"
        params: tuple = ()
        if recipient is not None:
            query += " WHERE recipient = ?"
            params = (recipient,)
        query += " ORDER BY payout_id"
        return [
            Payout(
                vault_id=row["vault_id"],
                recipient=row["recipient"],
                amount=int(row["amount"]),
                timestamp=row["timestamp"],
            )
            for row in self._conn.execute(query, params).fetchall()
        ]

    def credited(self, recipient: str) -> int:
        """Total amount paid out to *recipient*."""
        rows = self._conn.execute(
            "SELECT amount FROM payouts WHERE recipient = ?", (recipient,)
        ).fetchall()
        return sum(int(row["amount"]) for row in rows)

    def close(self) -> None:
        self._conn.close()
