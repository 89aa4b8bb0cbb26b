"""Token authentication and session lifecycle core.

Local password accounts, federated sign-in linking, and rotating refresh
tokens backed by SQLAlchemy.
"""

__version__ = "1.0.0"
