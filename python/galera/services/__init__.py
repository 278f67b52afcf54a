"""Service layer.

Services own the business rules and transactions. Routes call exactly one
service function per request and never touch the database directly.
"""
