"""artistdesk - admin backend for users, admins and artists."""

__version__ = "0.1.0"
