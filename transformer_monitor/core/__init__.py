"""Core primitives: measurement models, router, smoothing, anomaly rules,
state store and fleet tracking.

Data flows generator -> router -> smoothing engine -> state store. Only the
router is written by several threads; the rolling windows and the UI snapshot
each have a single owner.
"""
