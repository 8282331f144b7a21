"""
In-memory data store with thread-safe operations.

No business logic — only data access primitives.
"""
import threading
from typing import Optional
from app.models.transaction import TransactionRecord


class InMemoryStore:
    """Thread-safe in-memory store for gateway transactions and sent receipts."""

    def __init__(self):
        self._lock = threading.Lock()
        self._transactions: dict[str, TransactionRecord] = {}
        # idempotency_key -> transaction_id
        self._idempotency_keys: dict[str, str] = {}
        # transaction_id -> list of receipt destinations
        self._receipts: dict[str, list[str]] = {}

    # ── Transactions ────────────────────────────────────────────────────────

    def get_transaction(self, transaction_id: str) -> Optional[TransactionRecord]:
        with self._lock:
            return self._transactions.get(transaction_id)

    def list_transactions(self) -> list[TransactionRecord]:
        """All transactions, newest first."""
        with self._lock:
            txns = list(self._transactions.values())
        return sorted(txns, key=lambda t: t.created_at, reverse=True)

    def save_transaction(self, transaction: TransactionRecord) -> None:
        with self._lock:
            self._transactions[transaction.transaction_id] = transaction
            if transaction.idempotency_key:
                self._idempotency_keys[transaction.idempotency_key] = transaction.transaction_id

    # ── Idempotency ─────────────────────────────────────────────────────────

    def get_by_idempotency_key(self, key: str) -> Optional[TransactionRecord]:
        with self._lock:
            transaction_id = self._idempotency_keys.get(key)
            if transaction_id is None:
                return None
            return self._transactions.get(transaction_id)

    # ── Receipts ────────────────────────────────────────────────────────────

    def record_receipt(self, transaction_id: str, destination: str) -> None:
        with self._lock:
            self._receipts.setdefault(transaction_id, []).append(destination)

    def get_receipts(self, transaction_id: str) -> list[str]:
        with self._lock:
            return list(self._receipts.get(transaction_id, []))

    def reset(self) -> None:
        with self._lock:
            self._transactions.clear()
            self._idempotency_keys.clear()
            self._receipts.clear()


# Global singleton, populated by seed_data at startup
store = InMemoryStore()
