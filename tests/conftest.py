"""
Pytest configuration and fixtures
"""

import pytest
from typing import Any, List, Tuple

from schemas.destination import DestinationBase
from streaming.dispatcher import DestinationDispatcher
from streaming.events import EventHub


class RecordingDispatcher(DestinationDispatcher):
    """Dispatcher that records batches instead of calling real sinks"""

    def __init__(self, events: EventHub = None, fail_for: Tuple[str, ...] = ()):
        super().__init__(events or EventHub())
        self.calls: List[Tuple[DestinationBase, List[Any]]] = []
        self.fail_for = fail_for

    async def _send(self, destination, batch):
        self.calls.append((destination, list(batch)))
        if destination.label in self.fail_for:
            raise RuntimeError(f"{destination.label} is down")

    def batches_for(self, destination) -> List[List[Any]]:
        return [batch for d, batch in self.calls if d is destination]


@pytest.fixture
def recording_dispatcher():
    """Dispatcher capturing every delivered batch"""
    return RecordingDispatcher()


@pytest.fixture
def sample_records():
    """Mock source records"""
    return [
        {
            "id": "evt_001",
            "name": "signup",
            "user": "u1",
            "amount": 0,
            "created_at": "2024-01-15T10:00:00Z"
        },
        {
            "id": "evt_002",
            "name": "purchase",
            "user": "u1",
            "amount": 49.99,
            "created_at": "2024-01-15T11:00:00Z"
        },
        {
            "id": "evt_003",
            "name": "purchase",
            "user": "u2",
            "amount": 19.99,
            "created_at": "2024-01-15T12:00:00Z"
        }
    ]


@pytest.fixture
def sample_csv(tmp_path):
    """Small CSV file on disk"""
    csv_file = tmp_path / "events.csv"
    csv_file.write_text(
        "id,name,amount\n"
        "1,signup,0\n"
        "2,purchase,49.99\n"
        "3,purchase,19.99\n"
    )
    return csv_file
