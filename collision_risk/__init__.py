"""
NYC Collision Injury Risk Engine
--------------------------------
This package implements the statistical core behind the collision
dashboard: which crash attributes go together with injuries, and how risky
a given combination of attributes is.

Module Hierarchy:
- `features`: Category cleaning, the dimension registry, collision records,
  marginal (Empirical-Bayes) statistics and calendar/flow aggregations.
- `models`: Chi-square factor ranking and the multi-factor risk estimator.
- `ingest`: Collision CSV download and DuckDB-based column mapping.
- `exploration`: Static charts of the engine's outputs.
- `utils`: DuckDB connectivity.

Architecture (3-Layer Framework):
1. Marginal Layer (per-category shrunk rates & odds ratios)
2. Ranking Layer (2x2 chi-square against everyone else)
3. Estimation Layer (exact match / blend / marginal backoff)
"""
