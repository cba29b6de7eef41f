'''
Practice Analytics Test Suite

Test Modules:
-------------
- test_normalizer.py: Raw source to metric record normalisation
  - GP / other staff split on provider labels
  - Working-day counts (weekdays only)
  - Zero denominators and absent sources leave metrics undefined
  - Appointment grid ingestion from a DataFrame
  - Queue wait-time and booking-wait shares, read-only record metrics

- test_ranking.py: Percentile ranking
  - Rank 1 is best in the metric's direction
  - National / regional / network scopes
  - Percentile band and GP-access band boundaries

- test_consistency.py: Consistency scoring
  - Population standard deviation, score floored at 0
  - Per-family scale and minimum history
  - Leaderboards

- test_impact.py: Impact scoring
  - calls_saved sign and volume weighting
  - Pooled group rates

- test_forecasting.py: Linear trend forecasts
  - Least squares fit, insufficient data, relative trend threshold

- test_network_comparison.py: Network statistics
  - Average of practice averages, z-score outliers
  - Similar practices, combined demand index

- test_periods.py, test_metric_catalog.py, test_config.py: Supporting utilities

Running Tests:
--------------
    pip install -e ".[test]"
    pytest practice_analytics/tests -v

Markers:
--------
- scenario: worked end-to-end examples with known answers
- property: invariants that must hold for any input

See conftest.py for shared fixtures.
'''

__all__ = []
