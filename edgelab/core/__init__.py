"""Core mathematics, market data and configuration for EdgeLab.

This package contains pure, side-effect-free building blocks:

- ``odds_math``    odds normalisation, implied / no-vig probability, diffs
- ``quote``        immutable Quote / Event / ReferenceLine data model
- ``sport_config`` per-sport constants (spread caps, edge tiers, windows)
- ``cadence``      pre-game scan windows

Nothing in this package imports from ``edgelab.services``.
All modules are unit-testable in isolation.
"""
