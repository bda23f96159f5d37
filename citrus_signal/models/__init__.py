"""Typed domain models (pydantic) for market inputs, signals and tracker state."""
