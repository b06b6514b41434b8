"""Clients for externally invoked functions and realtime broadcast."""
