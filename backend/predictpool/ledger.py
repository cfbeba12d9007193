"""Value transfer primitive and its SQL-backed implementation."""

from __future__ import annotations

from typing import Protocol

from loguru import logger
from sqlalchemy.orm import Session

from .models import LedgerAccountRecord


class ValueLedger(Protocol):
    """Atomic movement of a fungible balance between two principals."""

    def transfer(self, sender: str, recipient: str, amount: int) -> bool:
        """Move ``amount`` and return ``False`` when ``sender`` cannot cover it."""

    def balance_of(self, principal: str) -> int:
        """Return the spendable balance of ``principal``."""


class SqlValueLedger:
    """Ledger whose balances live in the same transaction as settlement state.

    Because it writes through the operation's session, a rolled back
    operation also rolls back every transfer it made.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def _account(self, principal: str) -> LedgerAccountRecord:
        account = self._session.get(LedgerAccountRecord, principal)
        if account is None:
            account = LedgerAccountRecord(principal=principal, balance=0)
            self._session.add(account)
            self._session.flush()
        return account

    def balance_of(self, principal: str) -> int:
        account = self._session.get(LedgerAccountRecord, principal)
        return account.balance if account is not None else 0

    def transfer(self, sender: str, recipient: str, amount: int) -> bool:
        if amount < 0:
            raise ValueError("transfer amount must be non-negative")
        source = self._account(sender)
        if source.balance < amount:
            logger.debug(
                "Transfer of {} from {} rejected; balance is {}", amount, sender, source.balance
            )
            return False
        if sender == recipient or amount == 0:
            return True
        target = self._account(recipient)
        source.balance -= amount
        target.balance += amount
        return True

    def credit(self, principal: str, amount: int) -> int:
        """Mint ``amount`` into ``principal``; used to fund accounts locally."""

        if amount <= 0:
            raise ValueError("credit amount must be positive")
        account = self._account(principal)
        account.balance += amount
        return account.balance


__all__ = ["SqlValueLedger", "ValueLedger"]
