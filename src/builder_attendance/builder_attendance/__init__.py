"""Builder Attendance engine package.

This package is organized by feature modules (calendar, attendance, recognition,
notifications, ...) with async service/repository layers over a MySQL datastore.
"""
