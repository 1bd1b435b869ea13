"""Recurring order templates and the order generation engine."""
