"""CLI module for wa-attendant."""
