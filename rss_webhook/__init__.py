"""
RSS Webhook - Relay new RSS/Atom items to chat webhooks.

A Python application that fetches RSS/Atom feeds, skips items it has
already delivered, and posts the new ones to Discord-style webhooks.
"""

__version__ = "1.0.0"
