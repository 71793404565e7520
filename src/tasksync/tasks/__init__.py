"""
Task subsystem.

Components:
- task_models.py: data structures (Task, Subtask, TaskStatus)
- task_service.py: status ring, edits, subtask collection, live task views
"""
