"""
Task subsystem.

Components:
- task_models.py: data structures (Task, Identity, Role, TaskStatus, ...)
- task_repository.py: scoped task cache, replaced wholesale on every listing
- sync_channel.py: coalesces push signals into background refreshes
- task_views.py: counters, overdue set and filters over a cache snapshot
"""
