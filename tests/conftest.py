"""
Shared fixtures: a small two-tenant data set around Monday 2025-03-10.
"""

import json

import pendulum
import pytest

TZ = "America/Bahia"

# Sunday noon, the day before the data set's Monday
NOW = pendulum.datetime(2025, 3, 9, 12, 0, tz=TZ)


def sample_data() -> dict:
    return {
        "tenants": [
            {"id": "salao", "name": "Salão Bela Vista"},
            {"id": "barbearia", "name": "Barbearia do João", "settings": {"slot_duration": 30, "buffer_time": 0}},
        ],
        "services": [
            {"id": "corte", "tenant_id": "salao", "name": "Corte", "duration_minutes": 30},
            {"id": "barba", "tenant_id": "barbearia", "name": "Barba", "duration_minutes": 20},
        ],
        "staff": [
            {"id": "ana", "tenant_id": "salao", "name": "Ana"},
            {"id": "bruno", "tenant_id": "salao", "name": "Bruno"},
            {"id": "carlos", "tenant_id": "salao", "name": "Carlos", "active": False},
            {"id": "joao", "tenant_id": "barbearia", "name": "João"},
        ],
        "schedules": [
            {"id": "s1", "tenant_id": "salao", "staff_id": "ana", "weekday": 1,
             "start_time": "09:00", "end_time": "18:00", "break_start": "12:00", "break_end": "13:00"},
            {"id": "s2", "tenant_id": "salao", "staff_id": "bruno", "weekday": 1,
             "start_time": "09:00", "end_time": "12:00", "break_start": "", "break_end": ""},
            {"id": "s3", "tenant_id": "salao", "staff_id": "bruno", "weekday": 6,
             "start_time": "08:00", "end_time": "13:00", "active": False},
            {"id": "s4", "tenant_id": "salao", "staff_id": "ana", "weekday": 1,
             "start_time": "18:00", "end_time": "09:00"},
            {"id": "s5", "tenant_id": "barbearia", "staff_id": "joao", "weekday": 1,
             "start_time": "09:00", "end_time": "11:00"},
            {"id": "s6", "tenant_id": "salao", "staff_id": "carlos", "weekday": 1,
             "start_time": "09:00", "end_time": "18:00"},
        ],
        "bookings": [
            {"id": "b1", "tenant_id": "salao", "staff_id": "ana",
             "starts_at": "2025-03-10T10:00:00-03:00", "ends_at": "2025-03-10T10:30:00-03:00",
             "status": "confirmed"},
            {"id": "b2", "tenant_id": "salao", "staff_id": "bruno",
             "starts_at": "2025-03-10T09:00:00-03:00", "ends_at": "2025-03-10T10:00:00-03:00",
             "status": "pending"},
            {"id": "b3", "tenant_id": "salao", "staff_id": "ana",
             "starts_at": "2025-03-10T14:00:00-03:00", "ends_at": "2025-03-10T15:00:00-03:00",
             "status": "cancelled"},
        ],
        "blocks": [
            {"id": "k1", "tenant_id": "salao", "staff_id": None,
             "starts_at": "2025-03-10T17:00:00-03:00", "ends_at": "2025-03-10T18:00:00-03:00"},
            {"id": "k2", "tenant_id": "salao", "staff_id": "bruno",
             "starts_at": "2025-03-10T11:00:00-03:00", "ends_at": "2025-03-10T12:00:00-03:00"},
            {"id": "k3", "tenant_id": "barbearia", "staff_id": None,
             "starts_at": "2025-03-10T00:00:00-03:00", "ends_at": "2025-03-11T00:00:00-03:00"},
        ],
    }


@pytest.fixture
def data_file(tmp_path):
    path = tmp_path / "data.json"
    path.write_text(json.dumps(sample_data()), encoding="utf-8")
    return path


@pytest.fixture
def config_file(tmp_path, data_file):
    path = tmp_path / "config.yaml"
    path.write_text(
        "data_file: data.json\n"
        "timezone: America/Bahia\n"
        "defaults:\n"
        "  slot_granularity_minutes: 15\n"
        "  buffer_minutes: 10\n",
        encoding="utf-8",
    )
    return path
