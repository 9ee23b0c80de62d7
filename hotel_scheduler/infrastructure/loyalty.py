"""In-memory loyalty ledger

One point per whole currency unit spent. The real ledger is a separate
system; this adapter keeps enough state to observe what the scheduler sent.
"""
import logging
from decimal import Decimal, ROUND_DOWN
from typing import Dict, Tuple
from uuid import UUID

from hotel_scheduler.domain.repositories import LoyaltyLedger

logger = logging.getLogger(__name__)


class InMemoryLoyaltyLedger(LoyaltyLedger):

    def __init__(self):
        self._balances: Dict[UUID, int] = {}
        self._credits: Dict[UUID, Tuple[UUID, int]] = {}

    async def earn_points(self, client_id: UUID, amount: Decimal, currency: str, reference: UUID) -> None:
        points = int(amount.quantize(Decimal("1"), rounding=ROUND_DOWN))
        self._balances[client_id] = self._balances.get(client_id, 0) + points
        self._credits[reference] = (client_id, points)
        logger.info("Credited %d points to client %s for reservation %s", points, client_id, reference)

    async def refund_points(self, client_id: UUID, reference: UUID) -> None:
        credit = self._credits.pop(reference, None)
        if credit is None:
            return
        owner, points = credit
        self._balances[owner] = self._balances.get(owner, 0) - points
        logger.info("Reversed %d points from client %s for reservation %s", points, owner, reference)

    def balance(self, client_id: UUID) -> int:
        return self._balances.get(client_id, 0)
