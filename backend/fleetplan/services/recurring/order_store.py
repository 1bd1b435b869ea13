"""Order persistence for generated orders."""

from sqlalchemy.ext.asyncio import AsyncSession

from fleetplan.models.order import Order
from fleetplan.services.recurring.materializer import OrderDraft


class OrderStore:
    """Inserts orders inside the caller's transaction.

    Never commits: the generation engine commits the order together with the
    template cursor update.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, draft: OrderDraft) -> Order:
        """Insert the order and flush so unique order-number conflicts surface here."""
        order = Order(**draft.model_dump())
        self.session.add(order)
        await self.session.flush()
        return order
