"""
Replicated document store stand-in.

Components:
- filters.py: equality / set-membership / disjunction predicates
- sqlite_store.py: SQLite-backed store with push subscriptions
"""
