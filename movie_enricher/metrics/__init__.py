"""
Deterministic financial metrics computed from catalog facts.

Modules
-------
financial : parse_production_companies() + compute_rolling_roi() +
            compute_production_effectiveness() — pure functions, no DB or I/O.
"""
