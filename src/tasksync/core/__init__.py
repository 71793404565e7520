"""
Core building blocks shared by every service.

Components:
- ports.py: Protocols for the document store and the profile directory
- session.py: explicit "current user" value passed into every call
- errors.py: error taxonomy (validation / store / authorization)
- mutation.py: the mutate-then-log flow and its Outcome
- timeutil.py: canonical timestamp handling
- state.py: AppState container built by bootstrap
"""
