"""
Salon management backend.

Customers, appointments, staff attendance/payroll, inventory, vouchers/points,
finance and settings behind an owner-scoped HTTP API.
"""

__version__ = "0.1.0"
