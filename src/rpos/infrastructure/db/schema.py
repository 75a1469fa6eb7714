from __future__ import annotations

from sqlalchemy import MetaData

from rpos.infrastructure.db.models.base import Base
from rpos.infrastructure.db.models.cash import (  # noqa: F401
    CashMovementModel,
    CashSessionModel,
    SaleEntryModel,
)
from rpos.infrastructure.db.models.customer import CustomerModel  # noqa: F401
from rpos.infrastructure.db.models.menu import CategoryModel, ProductModel  # noqa: F401
from rpos.infrastructure.db.models.order import (  # noqa: F401
    OrderCounterModel,
    OrderLineModel,
    OrderModel,
)
from rpos.infrastructure.db.models.table import TableModel  # noqa: F401
from rpos.infrastructure.db.models.user import UserModel  # noqa: F401

metadata: MetaData = Base.metadata
