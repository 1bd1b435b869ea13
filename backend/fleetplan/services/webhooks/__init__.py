"""Outgoing webhooks: event payloads, notification and signed delivery."""
