"""Room-scoped real-time chat relay."""
