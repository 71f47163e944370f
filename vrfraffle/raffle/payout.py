"""Value transfers used to pay raffle winners."""

from __future__ import annotations

import logging
from typing import Callable

from sqlalchemy.orm import Session

from ..models import Account

logger = logging.getLogger(__name__)

Payout = Callable[[str, int], bool]
"""Callable that sends ``amount`` to ``recipient`` and reports success."""


class LedgerPayout:
    """Pay recipients by crediting their :class:`Account` ledger row.

    Unknown recipients get a new account. Accounts flagged with
    ``accepts_payments=False`` reject the transfer, in which case nothing is
    credited and ``False`` is returned.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def __call__(self, recipient: str, amount: int) -> bool:
        if amount < 0:
            raise ValueError("amount must not be negative")

        account = Account.get_by_address(self._session, recipient)
        if account is not None and not account.accepts_payments:
            logger.warning(f"Account {recipient} rejected a transfer of {amount}")
            return False

        if account is None:
            account = Account.get_or_create(self._session, recipient)
        account.balance = account.balance + amount
        self._session.flush()
        logger.debug(f"Credited {amount} to {recipient}")
        return True


__all__ = ["LedgerPayout", "Payout"]
