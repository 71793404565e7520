"""
List subsystem.

Components:
- list_models.py: TaskList and the selection-fallback rule
- list_service.py: create / rename / cascading delete, live list views
- collaboration.py: sharing, removing and leaving collaborators
"""
