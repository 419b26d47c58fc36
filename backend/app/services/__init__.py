"""Owner-scoped stores backing the HTTP layer and the workflow engine."""
