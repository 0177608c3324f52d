"""
ORM models for salon entities: owners, customers and their points, holdings
and vouchers, products and inventory, staff and payroll, appointments,
finance, settings and audit logs.

Importing this package ensures model classes are registered with the Base
metadata for Alembic and runtime usage.
"""

from .security import User  # noqa: F401
from .customers import (  # noqa: F401
    Customer,
    PointsLedger,
    CustomerProduct,
    CustomerProductLedger,
    Voucher,
    VoucherUse,
)
from .inventory import (  # noqa: F401
    Product,
    InventoryTransaction,
    InventoryAlert,
    ProductBatch,
)
from .staff import (  # noqa: F401
    Staff,
    StaffAttendance,
    PayrollSettings,
    PayrollRecord,
)
from .scheduling import Appointment  # noqa: F401
from .finance import Transaction, Expense, Budget  # noqa: F401
from .system import OwnerSettings, AuditLog  # noqa: F401
