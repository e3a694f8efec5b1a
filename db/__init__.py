"""
db/ - Database Layer
====================
Connection pool ownership, retry policy, error taxonomy, SSL policy and
schema initialization for PostgreSQL.
"""
