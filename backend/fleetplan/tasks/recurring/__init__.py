"""Recurring order tasks."""
