"""Task tracker backend: recurring-task lifecycle engine and operator API."""
