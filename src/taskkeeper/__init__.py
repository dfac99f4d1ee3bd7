"""Taskkeeper — personal task management behind cookie sessions.

Users sign in through an external identity provider, trade the provider's
ID token for a server-issued session cookie, and manage their own tasks.
"""

__version__ = "0.1.0"
