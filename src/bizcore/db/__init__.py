"""Database layer for Bizcore."""
