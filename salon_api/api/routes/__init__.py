"""
API route modules for the salon backend.

This package contains subrouters for:
- Auth: register, login, refresh, logout and current user
- Customers: customers, loyalty points, product holdings and vouchers
- Products and Inventory: catalogue, stock movements, alerts and batch expiry
- Staff and Payroll: staff, attendance, schedules and monthly payroll
- Appointments: single and recurring bookings
- Finance: transactions, expenses and the combined ledger
- Settings, Audit, Analytics and Dashboard

Routers are included from salon_api.api.main (under the /api/v1 prefix).
"""
