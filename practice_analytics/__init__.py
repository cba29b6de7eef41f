"""
Practice Analytics Package.

Analysis engine for primary-care practice operational data: appointments,
telephony and online consultations. Raw per-source counts are normalised
into canonical per-practice, per-period metric records, which then feed
independent, read-only analyses.

Subpackages:
    - core: Configuration, logging setup and exceptions
    - models: Pydantic schemas and enums
    - services: Normalisation, ranking, consistency, impact, forecasting
      and network comparison
    - tests: pytest suite

The package has no HTTP, persistence or CLI surface; a presentation layer
imports it and calls the services in-process.
"""

__version__ = "1.0.0"
