"""Client Service — identity resolution for tenant applications.

Maps a tenant application's own org/user identifiers (or a third-party
auth provider's) onto stable internal UUIDs, creating the backing rows
on first contact and returning the existing ones afterwards.
"""

__version__ = "0.1.0"
