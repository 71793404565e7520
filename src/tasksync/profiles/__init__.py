"""Profile lookup used to enrich collaborator emails at read time."""
