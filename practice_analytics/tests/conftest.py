"""
Pytest Configuration and Shared Fixtures for the Practice Analytics Tests.

This module provides fixtures and configuration for all tests, supporting:
- Settings isolation (the lru_cache'd singleton is cleared around each test)
- Factories for raw PracticePeriodInput objects and their sources
- Factories for canonical PracticeMetricRecord objects with chosen metrics
- A small two-network, two-region population for ranking and comparison

Factories return callables so each test states only the fields it cares
about; everything else takes a realistic default.
"""

from datetime import date, timedelta
from typing import Callable, Dict, Generator, List, Optional

import pytest

from practice_analytics.core.config import get_settings
from practice_analytics.models.schemas import (
    AppointmentDay,
    AppointmentSource,
    OnlineConsultationSource,
    PracticeMetricRecord,
    PracticePeriodInput,
    TelephonySource,
)


# ============================================================
# PYTEST CONFIGURATION
# ============================================================


def pytest_configure(config) -> None:
    """
    Register custom markers used across the suite.

    Custom markers defined:
    - scenario: Worked end-to-end examples with published expected values
    - property: Invariants that must hold for any input

    Usage:
        pytest -m scenario
    """
    config.addinivalue_line(
        'markers',
        'scenario: worked examples with fixed expected values'
    )
    config.addinivalue_line(
        'markers',
        'property: invariants that must hold for any input'
    )


# ============================================================
# SETTINGS ISOLATION
# ============================================================


@pytest.fixture(autouse=True)
def clear_settings_cache() -> Generator[None, None, None]:
    """
    Clear the cached Settings before and after every test.

    Tests that set PRACTICE_ANALYTICS_* variables with monkeypatch get a
    fresh Settings built from them, and never leak it to the next test.
    """
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# ============================================================
# RAW INPUT FACTORIES
# ============================================================


# October 2025 has 23 weekdays
OCTOBER_2025 = date(2025, 10, 1)


def weekdays_in_month(period: date) -> List[date]:
    days = []
    current = period
    while current.month == period.month:
        if current.weekday() < 5:
            days.append(current)
        current += timedelta(days=1)
    return days


@pytest.fixture
def make_appointments() -> Callable[..., AppointmentSource]:
    """
    Factory spreading GP and other-staff totals over a month's weekdays.

    Remainders land on the first day so the totals are exact.
    """
    def _make(
        gp: int = 230,
        other: int = 460,
        period: date = OCTOBER_2025,
        gp_label: str = "Dr A Patel",
        other_label: str = "Practice Nurse",
        **extra,
    ) -> AppointmentSource:
        days = weekdays_in_month(period)
        gp_each, gp_rest = divmod(gp, len(days))
        other_each, other_rest = divmod(other, len(days))
        rows = []
        for position, day in enumerate(days):
            rows.append(AppointmentDay(
                day=day,
                counts_by_provider={
                    gp_label: gp_each + (gp_rest if position == 0 else 0),
                    other_label: other_each + (other_rest if position == 0 else 0),
                },
            ))
        return AppointmentSource(days=rows, **extra)

    return _make


@pytest.fixture
def make_input(make_appointments) -> Callable[..., PracticePeriodInput]:
    """
    Factory for a full PracticePeriodInput.

    Pass appointments=None / telephony=None / online_consultations=None to
    make a source absent.
    """
    default = object()

    def _make(
        practice_id: str = "C82040",
        population: Optional[int] = 10000,
        period: date = OCTOBER_2025,
        appointments=default,
        telephony=default,
        online_consultations=default,
        **fields,
    ) -> PracticePeriodInput:
        if appointments is default:
            appointments = make_appointments(period=period)
        if telephony is default:
            telephony = TelephonySource(
                inbound=1000, answered=880, missed=100, ended_during_ivr=20,
                callback_requested=50, callback_made=45,
            )
        if online_consultations is default:
            online_consultations = OnlineConsultationSource(clinical=300, admin=150, other=50)

        return PracticePeriodInput(
            practice_id=practice_id,
            practice_name=fields.pop("practice_name", f"Practice {practice_id}"),
            network_group_id=fields.pop("network_group_id", "PCN1"),
            network_group_name=fields.pop("network_group_name", "North PCN"),
            regional_group_id=fields.pop("regional_group_id", "ICB1"),
            regional_group_name=fields.pop("regional_group_name", "Northern ICB"),
            period=period,
            population=population,
            appointments=appointments,
            telephony=telephony,
            online_consultations=online_consultations,
            **fields,
        )

    return _make


# ============================================================
# CANONICAL RECORD FACTORIES
# ============================================================


@pytest.fixture
def make_record() -> Callable[..., PracticeMetricRecord]:
    """
    Factory for a PracticeMetricRecord with an explicit metrics mapping.

    Bypasses the normalizer so ranking / consistency / comparison tests
    control metric values directly.
    """
    def _make(
        practice_id: str,
        metrics: Optional[Dict[str, Optional[float]]] = None,
        period: date = OCTOBER_2025,
        network_group_id: Optional[str] = "PCN1",
        regional_group_id: Optional[str] = "ICB1",
        population: Optional[int] = 10000,
        **fields,
    ) -> PracticeMetricRecord:
        return PracticeMetricRecord(
            practice_id=practice_id,
            practice_name=fields.pop("practice_name", f"Practice {practice_id}"),
            network_group_id=network_group_id,
            network_group_name=fields.pop("network_group_name", network_group_id),
            regional_group_id=regional_group_id,
            regional_group_name=fields.pop("regional_group_name", regional_group_id),
            period=period,
            population=population,
            metrics=metrics or {},
            has_appointment_data=fields.pop("has_appointment_data", True),
            has_telephony_data=fields.pop("has_telephony_data", True),
            has_online_consultation_data=fields.pop("has_online_consultation_data", True),
            **fields,
        )

    return _make


@pytest.fixture
def make_monthly_records(make_record) -> Callable[..., List[PracticeMetricRecord]]:
    """
    Factory for one practice's records over consecutive months.

    A None in `values` produces a record where the metric is undefined.
    """
    def _make(
        practice_id: str,
        metric: str,
        values: List[Optional[float]],
        start: date = date(2025, 1, 1),
        **fields,
    ) -> List[PracticeMetricRecord]:
        records = []
        for offset, value in enumerate(values):
            index = start.month - 1 + offset
            period = date(start.year + index // 12, index % 12 + 1, 1)
            records.append(make_record(practice_id, {metric: value}, period=period, **dict(fields)))
        return records

    return _make


@pytest.fixture
def regional_population(make_record) -> List[PracticeMetricRecord]:
    """
    Six practices in two networks of one region plus one in another region.

    missed_call_pct values (lower is better):
        P1 8.0  (PCN1, ICB1)
        P2 12.0 (PCN1, ICB1)
        P3 10.0 (PCN1, ICB1)
        P4 6.0  (PCN2, ICB1)
        P5 None (PCN2, ICB1) - undefined, no telephony
        P6 4.0  (PCN3, ICB2)
    """
    rows = [
        ("P1", 8.0, "PCN1", "ICB1"),
        ("P2", 12.0, "PCN1", "ICB1"),
        ("P3", 10.0, "PCN1", "ICB1"),
        ("P4", 6.0, "PCN2", "ICB1"),
        ("P5", None, "PCN2", "ICB1"),
        ("P6", 4.0, "PCN3", "ICB2"),
    ]
    return [
        make_record(
            practice_id,
            {"missed_call_pct": value},
            network_group_id=network,
            regional_group_id=region,
            has_telephony_data=value is not None,
        )
        for practice_id, value, network, region in rows
    ]
