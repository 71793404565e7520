"""
Snapshot subscriptions.

A Subscription redelivers the full current matching set (never a delta) after
every committed change that alters it. Consumers sort and derive client-side.
"""
