"""
Citrus Signal — orange-juice futures market signal engine.

Converts frost duration, inventory, RSI momentum and market-context flags
(La Niña, hurricane proximity, Brazil drought) into a win probability, a
recommended action and an auditable insight.
"""

__version__ = "0.1.0"
