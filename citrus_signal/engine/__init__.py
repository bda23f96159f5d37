"""
Decision engine: the pure signal evaluator, the persisted frost exposure
tracker and the live-data reconciler.
"""
