"""Shared fixtures: raw Oura documents as the API returns them."""

import copy

import pytest

from oura_exporter.vendor_types import OuraHeartRateSample, OuraSleepDocument

SLEEP_DOCUMENT = {
    "id": "sleep-1",
    "average_breath": 14.5,
    "average_heart_rate": 52.25,
    "average_hrv": 48,
    "awake_time": 1800,
    "bedtime_end": "2021-01-02T07:00:00+00:00",
    "bedtime_start": "2021-01-01T23:00:00+00:00",
    "day": "2021-01-02",
    "deep_sleep_duration": 3600,
    "efficiency": 90,
    "heart_rate": {
        "interval": 300.0,
        "items": [50.0, None, 55.6],
        "timestamp": "2021-01-01T23:00:00+00:00",
    },
    "hrv": {
        "interval": 60.0,
        "items": [50, 60, None, 70],
        "timestamp": "2021-01-01T23:00:00+00:00",
    },
    "latency": 600,
    "light_sleep_duration": 14400,
    "low_battery_alert": False,
    "lowest_heart_rate": 48,
    "movement_30_sec": "1112211",
    "period": 0,
    "readiness": {
        "contributors": {
            "activity_balance": 81,
            "body_temperature": 95,
            "hrv_balance": 70,
            "previous_day_activity": 77,
            "previous_night": 85,
            "recovery_index": 100,
            "resting_heart_rate": 90,
            "sleep_balance": 88,
        },
        "score": 80,
        "temperature_deviation": -0.1,
        "temperature_trend_deviation": 0.2,
    },
    "readiness_score_delta": None,
    "rem_sleep_duration": 5400,
    "restless_periods": 200,
    "sleep_phase_5_min": "4213",
    "sleep_score_delta": 1.5,
    "time_in_bed": 28800,
    "total_sleep_duration": 25200,
    "type": "long_sleep",
}

HEART_RATE_SAMPLE = {
    "bpm": 60,
    "source": "rest",
    "timestamp": "2021-01-01T00:00:00+00:00",
}


@pytest.fixture
def sleep_document_data():
    """Raw sleep document, safe to mutate."""
    return copy.deepcopy(SLEEP_DOCUMENT)


@pytest.fixture
def sleep_document(sleep_document_data):
    return OuraSleepDocument.model_validate(sleep_document_data)


@pytest.fixture
def heart_rate_sample_data():
    return dict(HEART_RATE_SAMPLE)


@pytest.fixture
def heart_rate_sample(heart_rate_sample_data):
    return OuraHeartRateSample.model_validate(heart_rate_sample_data)
