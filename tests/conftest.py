from __future__ import annotations

from typing import Any

import pytest
from fastapi.testclient import TestClient

from railbook import api
from railbook.config import Settings
from railbook.db.repositories import Database
from railbook.notifications.transports import MemoryTransport
from railbook.runtime import RailbookRuntime


def booking_payload(**overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "passengers": [
            {
                "fullName": "Budi Santoso",
                "idNumber": "3273010101900001",
                "email": "budi@example.com",
                "phoneNumber": "081234567890",
                "seatNumber": "12A",
                "wagonNumber": "3",
                "wagonClass": "Ekonomi",
            }
        ],
        "contactDetail": {
            "fullName": "Budi Santoso",
            "email": "budi@example.com",
            "phoneNumber": "081234567890",
        },
        "trainDetail": {
            "trainName": "Argo Parahyangan",
            "trainType": "Eksekutif",
            "origin": "Bandung",
            "destination": "Gambir",
            "departureDate": "2026-11-02",
            "departureTime": "07:15",
            "arrivalTime": "10:05",
        },
        "paymentMethod": "virtual_account",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def transport() -> MemoryTransport:
    return MemoryTransport()


@pytest.fixture
def database() -> Database:
    return Database.in_memory()


@pytest.fixture
def runtime(database: Database, transport: MemoryTransport) -> RailbookRuntime:
    return RailbookRuntime(Settings(), database=database, transport=transport)


@pytest.fixture
def client(runtime: RailbookRuntime, monkeypatch) -> TestClient:
    monkeypatch.setattr(api, "runtime", runtime)
    return TestClient(api.app)
