"""Candidate field lookup over loosely shaped provider JSON."""

from order_bridge.utils.fields import first_present, iter_present, resolve_path

ORDER = {
    "id": 42,
    "code": "",
    "orderStatus": {"name": "Shipped"},
    "shipments": [{"trackingNumber": "TRK-1", "carrier": "Yurtici"}],
    "paid": True,
}


def test_resolve_nested_and_list_paths():
    assert resolve_path(ORDER, "orderStatus.name") == "Shipped"
    assert resolve_path(ORDER, "shipments.0.trackingNumber") == "TRK-1"


def test_missing_paths_are_not_present():
    assert first_present(ORDER, ["shipments.3.trackingNumber", "nope.deeper"]) is None


def test_first_non_empty_value_wins():
    # "code" is empty, so the numeric id is used and stringified
    assert first_present(ORDER, ["code", "id"]) == "42"


def test_objects_and_booleans_are_never_values():
    assert first_present(ORDER, ["orderStatus", "paid"], default="unknown") == "unknown"


def test_iter_present_yields_every_hit():
    hits = list(iter_present(ORDER, ["id", "orderStatus.name", "code"]))
    assert hits == [("id", "42"), ("orderStatus.name", "Shipped")]
