import threading

import pytest

from molgraph.bridge import ComputeChannel, handle_message
from molgraph.errors import ComputeError
from molgraph.model import Atom, Bond

WATER = [
    {"element": "O", "x": 0.0, "y": 0.0, "z": 0.0},
    {"element": "H", "x": 0.96, "y": 0.0, "z": 0.0},
    {"element": "H", "x": -0.24, "y": 0.93, "z": 0.0},
]


def _collect(message):
    responses = []
    handle_message(message, responses.append)
    return responses


def _line_of_atoms(count: int):
    return [{"element": "C", "x": 1.5 * i, "y": 0.0, "z": 0.0} for i in range(count)]


def test_infer_bonds_echoes_id() -> None:
    responses = _collect({"type": "inferBonds", "id": "bonds-1", "atoms": WATER})

    assert responses == [
        {
            "type": "bondsComplete",
            "id": "bonds-1",
            "bonds": [
                {"atom1Index": 0, "atom2Index": 1, "order": 1},
                {"atom1Index": 0, "atom2Index": 2, "order": 1},
            ],
        }
    ]


def test_response_without_id_has_no_id_key() -> None:
    responses = _collect({"type": "inferBonds", "atoms": WATER})
    assert len(responses) == 1
    assert "id" not in responses[0]


def test_tolerance_is_applied() -> None:
    atoms = [
        {"element": "C", "x": 0.0, "y": 0.0, "z": 0.0},
        {"element": "C", "x": 2.0, "y": 0.0, "z": 0.0},
    ]
    assert _collect({"type": "inferBonds", "atoms": atoms})[0]["bonds"] == []
    assert len(_collect({"type": "inferBonds", "atoms": atoms, "tolerance": 1.0})[0]["bonds"]) == 1


def test_negative_tolerance_yields_no_bonds() -> None:
    atoms = [
        {"element": "C", "x": 0.0, "y": 0.0, "z": 0.0},
        {"element": "C", "x": 0.9, "y": 0.0, "z": 0.0},
    ]
    response = _collect({"type": "inferBonds", "atoms": atoms, "tolerance": -2.5})[0]
    assert response == {"type": "bondsComplete", "bonds": []}


def test_missing_atoms_errors() -> None:
    assert _collect({"type": "inferBonds", "id": "a"}) == [
        {"type": "error", "id": "a", "error": "No atoms provided for bond inference"}
    ]
    assert _collect({"type": "buildSpatialIndex"}) == [
        {"type": "error", "error": "No atoms provided for spatial index"}
    ]


def test_unknown_type() -> None:
    assert _collect({"type": "explode", "id": 7}) == [
        {"type": "error", "id": 7, "error": "Unknown message type: explode"}
    ]


@pytest.mark.parametrize(
    "message",
    [
        "not a mapping",
        {"type": "inferBonds", "atoms": "abc"},
        {"type": "inferBonds", "atoms": [{"element": "C", "x": 0.0}]},
        {"type": "inferBonds", "atoms": [{"element": "C", "x": "a", "y": 0, "z": 0}]},
        {"type": "inferBonds", "atoms": WATER, "tolerance": "wide"},
        {"type": "detectAromatic", "bonds": [{"atom1Index": 0}]},
    ],
)
def test_malformed_requests_become_error_responses(message) -> None:
    responses = _collect(message)
    assert len(responses) == 1
    assert responses[0]["type"] == "error"
    assert responses[0]["error"]


def test_build_spatial_index_stats() -> None:
    responses = _collect({"type": "buildSpatialIndex", "id": "s", "atoms": WATER})
    assert responses == [
        {
            "type": "spatialIndexComplete",
            "id": "s",
            "stats": {"cellCount": 2, "avgAtomsPerCell": 1.5, "maxAtomsInCell": 2},
        }
    ]


def test_detect_aromatic_is_empty() -> None:
    responses = _collect({"type": "detectAromatic", "id": "r", "atoms": WATER})
    assert responses == [{"type": "aromaticComplete", "id": "r", "aromaticRings": []}]


def test_progress_precedes_result_for_large_inputs() -> None:
    responses = _collect({"type": "inferBonds", "id": "big", "atoms": _line_of_atoms(10001)})

    assert [response["type"] for response in responses] == ["progress", "bondsComplete"]
    assert responses[0] == {"type": "progress", "id": "big", "progress": 0}
    assert len(responses[1]["bonds"]) == 10000


def test_no_progress_at_threshold() -> None:
    responses = _collect({"type": "inferBonds", "atoms": _line_of_atoms(10000)})
    assert [response["type"] for response in responses] == ["bondsComplete"]


def test_channel_request_assigns_ids_and_resolves() -> None:
    seen = []
    with ComputeChannel(on_message=seen.append) as channel:
        first = channel.request({"type": "buildSpatialIndex", "atoms": WATER})
        second = channel.request({"type": "detectAromatic"})
        assert first.result(timeout=10)["id"] == "buildSpatialIndex-1"
        assert second.result(timeout=10)["id"] == "detectAromatic-2"
    assert [response["type"] for response in seen] == [
        "spatialIndexComplete",
        "aromaticComplete",
    ]


def test_channel_keeps_caller_id() -> None:
    with ComputeChannel() as channel:
        response = channel.request({"type": "detectAromatic", "id": "mine"}).result(timeout=10)
    assert response["id"] == "mine"


def test_channel_error_fails_future() -> None:
    with ComputeChannel() as channel:
        future = channel.request({"type": "inferBonds"})
        with pytest.raises(ComputeError, match="No atoms provided for bond inference"):
            future.result(timeout=10)
        assert channel.pending_count() == 0


def test_channel_infer_bonds_returns_bond_objects() -> None:
    atoms = [Atom.from_dict(payload, i) for i, payload in enumerate(WATER)]
    with ComputeChannel() as channel:
        bonds = channel.infer_bonds(atoms).result(timeout=10)
    assert bonds == [Bond(0, 1, 1), Bond(0, 2, 1)]


def test_channel_runs_requests_in_submission_order() -> None:
    order = []
    lock = threading.Lock()

    def record(response) -> None:
        with lock:
            order.append(response["id"])

    with ComputeChannel(on_message=record) as channel:
        futures = [
            channel.request({"type": "inferBonds", "id": f"r{i}", "atoms": WATER})
            for i in range(5)
        ]
        for future in futures:
            future.result(timeout=10)
    assert order == [f"r{i}" for i in range(5)]


def test_channel_reports_progress() -> None:
    progress = []
    with ComputeChannel(on_progress=lambda rid, value: progress.append((rid, value))) as channel:
        channel.request(
            {"type": "inferBonds", "id": "big", "atoms": _line_of_atoms(10001)}
        ).result(timeout=60)
    assert progress == [("big", 0.0)]


def test_closed_channel_rejects_requests() -> None:
    channel = ComputeChannel()
    channel.close()
    with pytest.raises(ComputeError):
        channel.request({"type": "detectAromatic"})
