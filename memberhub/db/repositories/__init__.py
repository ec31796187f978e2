"""
Repository layer for database operations.

Each module holds the queries for one aggregate. Repository functions add
and flush but never commit: the calling service owns the transaction, so
multi-row changes (a status change and its family cascade, a promotion
round) land together or not at all.
"""
