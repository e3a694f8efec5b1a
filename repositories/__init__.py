"""
repositories/ - Data Access Layer
==================================
Each repository encapsulates all SQL queries for one entity or join table.
Repositories are constructed with a RetryExecutor, so every statement runs
with the retry policy and inside a transaction. Errors are never swallowed.
"""
