"""Order repository interface.

This is the persistence boundary of the order engine: it stores orders,
serves them back as ``OrderOutputDTO`` values, and is the only place
status mutations are durably applied.  Implementations are responsible
for serializing concurrent mutations of the same order.

The Service Layer depends exclusively on this contract (DIP).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, List, Optional, Tuple

if TYPE_CHECKING:
    from modules.orders.dtos import OrderDraftDTO, OrderOutputDTO


class IOrderRepository(ABC):
    """Repository contract for the Order aggregate root.

    The Order aggregate includes OrderItem children and
    OrderStatusHistory records.  Mutations must be atomic.
    """

    @abstractmethod
    def create(self, draft: OrderDraftDTO, user_id: Optional[object]) -> OrderOutputDTO:
        """Persist a new order from *draft*; assigns id and timestamps.

        Must reject drafts without items.
        """

    @abstractmethod
    def get_by_id(self, id: str) -> Optional[OrderOutputDTO]:
        """Retrieve an order, or ``None`` when it does not exist."""

    @abstractmethod
    def get_for_update(self, id: str) -> Optional[OrderOutputDTO]:
        """Retrieve an order and hold it against concurrent mutation."""

    @abstractmethod
    def list_by_status(
        self,
        status: Optional[str] = None,
        page: int = 1,
        page_size: int = 10,
        user_id: Optional[object] = None,
    ) -> Tuple[List[OrderOutputDTO], int]:
        """Return one page of orders and the total number of pages."""

    @abstractmethod
    def apply_transition(
        self,
        id: str,
        order_status: Optional[str] = None,
        tracking_number: Optional[str] = None,
        payment_status: Optional[str] = None,
    ) -> OrderOutputDTO:
        """Write status fields together; ``None`` leaves a field unchanged."""

    @abstractmethod
    def add_history(
        self,
        order_id: str,
        kind: str,
        new_status: str,
        old_status: Optional[str] = None,
        user_id: Optional[object] = None,
        notes: str = "",
    ) -> None:
        """Record a status change in the order's audit trail."""
