"""Bizcore: tenant resolution, access control, invitations and business entity consolidation."""

__version__ = "0.1.0"
