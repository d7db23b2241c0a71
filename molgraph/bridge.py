"""Message-based bridge for offloading heavy computations."""

from __future__ import annotations

from concurrent.futures import Future
import itertools
import logging
import math
import threading
from typing import Callable, Dict, List, Mapping, Optional, Sequence

from molgraph.config import BOND_TOLERANCE, PROGRESS_ATOM_THRESHOLD
from molgraph.errors import ComputeError, MolgraphError, ProtocolError, error_response
from molgraph.model.state import Atom, Bond
from molgraph.services.aromatic import detect_aromatic_rings
from molgraph.services.bonds import infer_bonds
from molgraph.services.spatial_index import SpatialHashGrid
from molgraph.worker import Worker

logger = logging.getLogger(__name__)

Response = Dict[str, object]
Emit = Callable[[Response], None]


def handle_message(message: Mapping[str, object], emit: Emit) -> None:
    """Process one offload request to completion.

    Parameters
    ----------
    message
        Request with ``type`` (``inferBonds``, ``buildSpatialIndex`` or
        ``detectAromatic``) and optional ``id``, ``atoms``, ``bonds`` and
        ``tolerance``.
    emit
        Callback receiving each response. An ``inferBonds`` request over
        more than 10,000 atoms first emits a ``progress`` response; every
        request ends with exactly one final response.

    Notes
    -----
    Failures are reported as ``error`` responses and never raised. The
    request ``id`` is echoed on every response when present.
    """

    request_id = message.get("id") if isinstance(message, Mapping) else None
    try:
        if not isinstance(message, Mapping):
            raise ProtocolError("invalid_message", "Message must be an object")
        msg_type = message.get("type")
        handler = _HANDLERS.get(msg_type) if isinstance(msg_type, str) else None
        if handler is None:
            raise ProtocolError("unknown_type", f"Unknown message type: {msg_type}")
        logger.debug("Handling %s request id=%s", msg_type, request_id)
        response = handler(message, request_id, emit)
    except MolgraphError as exc:
        logger.warning("Request id=%s failed: %s", request_id, exc.message)
        response = exc.to_response(request_id)
    except Exception as exc:
        logger.exception("Request id=%s failed unexpectedly", request_id)
        response = error_response(str(exc) or type(exc).__name__, request_id)
    emit(response)


def _with_id(response: Response, request_id: Optional[object]) -> Response:
    if request_id is not None:
        response["id"] = request_id
    return response


def _atoms_from_payload(message: Mapping[str, object], missing_message: str) -> List[Atom]:
    payload = message.get("atoms")
    if payload is None:
        raise ProtocolError("missing_atoms", missing_message)
    if isinstance(payload, (str, bytes)) or not isinstance(payload, Sequence):
        raise ProtocolError("invalid_atoms", "atoms must be a list")
    atoms: List[Atom] = []
    for position, item in enumerate(payload):
        if isinstance(item, Atom):
            atoms.append(item)
            continue
        if not isinstance(item, Mapping):
            raise ProtocolError("invalid_atoms", f"Atom {position} must be an object")
        try:
            atoms.append(Atom.from_dict(item, position))
        except KeyError as exc:
            raise ProtocolError(
                "invalid_atoms", f"Atom {position} is missing field {exc.args[0]}"
            ) from exc
        except (TypeError, ValueError) as exc:
            raise ProtocolError(
                "invalid_atoms", f"Atom {position} is malformed", str(exc)
            ) from exc
    return atoms


def _bonds_from_payload(message: Mapping[str, object]) -> List[Bond]:
    payload = message.get("bonds")
    if payload is None:
        return []
    if isinstance(payload, (str, bytes)) or not isinstance(payload, Sequence):
        raise ProtocolError("invalid_bonds", "bonds must be a list")
    bonds: List[Bond] = []
    for position, item in enumerate(payload):
        if isinstance(item, Bond):
            bonds.append(item)
            continue
        try:
            bonds.append(Bond.from_dict(item))
        except (KeyError, TypeError, ValueError) as exc:
            raise ProtocolError(
                "invalid_bonds", f"Bond {position} is malformed", str(exc)
            ) from exc
    return bonds


def _tolerance(message: Mapping[str, object]) -> float:
    value = message.get("tolerance")
    if value is None:
        return BOND_TOLERANCE
    if isinstance(value, bool):
        raise ProtocolError("invalid_tolerance", "tolerance must be a number")
    try:
        tolerance = float(value)
    except (TypeError, ValueError):
        raise ProtocolError("invalid_tolerance", "tolerance must be a number", value) from None
    if not math.isfinite(tolerance):
        raise ProtocolError("invalid_tolerance", "tolerance must be finite", value)
    return tolerance


def _handle_infer_bonds(
    message: Mapping[str, object], request_id: Optional[object], emit: Emit
) -> Response:
    atoms = _atoms_from_payload(message, "No atoms provided for bond inference")
    tolerance = _tolerance(message)
    if len(atoms) > PROGRESS_ATOM_THRESHOLD:
        emit(_with_id({"type": "progress", "progress": 0}, request_id))
    bonds = infer_bonds(atoms, tolerance)
    return _with_id(
        {"type": "bondsComplete", "bonds": [bond.to_dict() for bond in bonds]},
        request_id,
    )


def _handle_build_spatial_index(
    message: Mapping[str, object], request_id: Optional[object], emit: Emit
) -> Response:
    atoms = _atoms_from_payload(message, "No atoms provided for spatial index")
    grid = SpatialHashGrid.build(atoms)
    return _with_id({"type": "spatialIndexComplete", "stats": grid.stats()}, request_id)


def _handle_detect_aromatic(
    message: Mapping[str, object], request_id: Optional[object], emit: Emit
) -> Response:
    atoms: List[Atom] = []
    if message.get("atoms") is not None:
        atoms = _atoms_from_payload(message, "No atoms provided for aromatic detection")
    rings = detect_aromatic_rings(atoms, _bonds_from_payload(message))
    return _with_id({"type": "aromaticComplete", "aromaticRings": rings}, request_id)


_HANDLERS: Dict[str, Callable[[Mapping[str, object], Optional[object], Emit], Response]] = {
    "inferBonds": _handle_infer_bonds,
    "buildSpatialIndex": _handle_build_spatial_index,
    "detectAromatic": _handle_detect_aromatic,
}


class ComputeChannel:
    """Offload channel running requests on a single background thread.

    Requests are handled one at a time in submission order. Each request
    carries a correlation id so that responses can be matched to pending
    futures.

    Attributes
    ----------
    _worker
        Worker running :func:`handle_message`.
    _pending
        Futures awaiting a final response, keyed by request id.
    _on_message
        Optional callback receiving every response.
    _on_progress
        Optional callback receiving ``(request_id, progress)``.
    """

    def __init__(
        self,
        on_message: Optional[Emit] = None,
        on_progress: Optional[Callable[[Optional[object], float], None]] = None,
    ) -> None:
        self._worker = Worker(max_workers=1)
        self._on_message = on_message
        self._on_progress = on_progress
        self._pending: Dict[object, Future] = {}
        self._lock = threading.Lock()
        self._counter = itertools.count(1)
        self._closed = False

    def __enter__(self) -> "ComputeChannel":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def post(self, message: Mapping[str, object]) -> Future:
        """Enqueue a request; responses go to the callbacks only.

        Returns
        -------
        concurrent.futures.Future
            Future completing once the request has been handled.
        """
        if self._closed:
            raise ComputeError("channel_closed", "Compute channel is closed")
        return self._worker.submit(handle_message, message, self._dispatch)

    def request(self, message: Mapping[str, object]) -> Future:
        """Enqueue a request and return a future for its final response.

        Parameters
        ----------
        message
            Request payload. A correlation id ``"<type>-<n>"`` is assigned
            when ``id`` is missing.

        Returns
        -------
        concurrent.futures.Future
            Resolves with the final response, or fails with
            :class:`ComputeError` when the response is an ``error``.

        Raises
        ------
        ComputeError
            If the channel is closed or the id is already pending.
        """

        payload = dict(message)
        if payload.get("id") is None:
            payload["id"] = f"{payload.get('type', 'request')}-{next(self._counter)}"
        request_id = payload["id"]
        future: Future = Future()
        with self._lock:
            if request_id in self._pending:
                raise ComputeError(
                    "duplicate_id", f"Request id {request_id} is already pending"
                )
            self._pending[request_id] = future
        try:
            self.post(payload)
        except Exception:
            with self._lock:
                self._pending.pop(request_id, None)
            raise
        return future

    def infer_bonds(
        self, atoms: Sequence[Atom], tolerance: Optional[float] = None
    ) -> Future:
        """Infer bonds in the background.

        Returns
        -------
        concurrent.futures.Future
            Resolves with a list of :class:`Bond`.
        """

        message: Dict[str, object] = {"type": "inferBonds", "atoms": list(atoms)}
        if tolerance is not None:
            message["tolerance"] = tolerance
        result: Future = Future()

        def _done(inner: Future) -> None:
            exc = inner.exception()
            if exc is not None:
                result.set_exception(exc)
                return
            response = inner.result()
            result.set_result([Bond.from_dict(bond) for bond in response["bonds"]])

        self.request(message).add_done_callback(_done)
        return result

    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    def close(self) -> None:
        """Finish queued requests and stop the worker thread."""
        if self._closed:
            return
        self._closed = True
        self._worker.shutdown(wait=True)
        with self._lock:
            leftovers = list(self._pending.items())
            self._pending.clear()
        for request_id, future in leftovers:
            future.set_exception(
                ComputeError("channel_closed", f"No response for request {request_id}")
            )

    def _dispatch(self, response: Response) -> None:
        request_id = response.get("id")
        response_type = response.get("type")
        if self._on_message is not None:
            try:
                self._on_message(response)
            except Exception:
                logger.exception("on_message callback failed for id=%s", request_id)
        if response_type == "progress":
            if self._on_progress is not None:
                try:
                    self._on_progress(request_id, float(response.get("progress", 0)))
                except Exception:
                    logger.exception("on_progress callback failed for id=%s", request_id)
            return
        if request_id is None:
            return
        with self._lock:
            future = self._pending.pop(request_id, None)
        if future is None:
            return
        if response_type == "error":
            future.set_exception(
                ComputeError("compute_failed", str(response.get("error")), response)
            )
        else:
            future.set_result(response)
