"""Stateful services: the single parameter owner and the live-data sync."""
