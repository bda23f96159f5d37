"""Technical indicators computed from futures price history."""
