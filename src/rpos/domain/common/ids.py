from __future__ import annotations

from typing import NewType

OrderId = NewType("OrderId", str)
OrderLineId = NewType("OrderLineId", str)
TableId = NewType("TableId", str)
CustomerId = NewType("CustomerId", str)
CategoryId = NewType("CategoryId", str)
ProductId = NewType("ProductId", str)
UserId = NewType("UserId", str)
CashSessionId = NewType("CashSessionId", str)
CashMovementId = NewType("CashMovementId", str)
SaleEntryId = NewType("SaleEntryId", str)
