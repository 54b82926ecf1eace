"""External collaborators: persistence stores and message delivery."""
