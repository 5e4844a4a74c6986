"""Office Tracker package.

Hybrid-work attendance tracking organized by feature modules (attendance,
holidays, location, notifications, sync, push) with a thin Flask layer for the
server-side push jobs and an explicit client-side application context.
"""
