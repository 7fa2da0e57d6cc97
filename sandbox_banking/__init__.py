"""
Sandbox Banking

Bulk data import for a banking API sandbox: banks, users, accounts and
transactions are validated as a whole and persisted only when every rule holds.
"""

__version__ = "1.0.0"
