import json

import pytest

from dlqueue.status import Status


def test_declaration_order_matches_values():
    members = list(Status)
    assert members == [Status(value) for value in range(len(members))]
    assert members[0] is Status(0)
    assert members[-1] is Status(5)


@pytest.mark.parametrize(
    "value, member",
    [
        (0, Status.PENDING),
        (1, Status.IN_PROGRESS),
        (2, Status.PAUSED),
        (3, Status.CANCELLED),
        (4, Status.FAILED),
        (5, Status.COMPLETED),
    ],
)
def test_values_fixed_by_state_file_format(value, member):
    assert Status(value) is member


@pytest.mark.parametrize("status", list(Status))
def test_json_round_trip(status):
    encoded = json.dumps({"Status": status})
    assert Status(json.loads(encoded)["Status"]) is status


def test_unknown_value_rejected():
    with pytest.raises(ValueError):
        Status(42)