"""Advisory analysis layered on top of a signal result (rationale, risk/reward)."""
