"""Service layer for the recurring-task lifecycle engine."""
