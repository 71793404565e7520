"""
Activity subsystem.

Components:
- activity_models.py: the immutable Activity record
- activity_log.py: append-only writer and live feed subscription
- feed.py: ordering, actor categorization, personalization, pagination, relative time
"""
