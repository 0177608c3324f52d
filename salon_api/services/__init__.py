"""
Domain services: business rules that span several repositories
(stock movements, payroll calculation, recurring bookings, finance summaries).
"""
