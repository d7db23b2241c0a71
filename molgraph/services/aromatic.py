"""Aromatic ring detection placeholder."""

from __future__ import annotations

from typing import Dict, List, Sequence

from molgraph.model.state import Atom, Bond


def detect_aromatic_rings(
    atoms: Sequence[Atom], bonds: Sequence[Bond]
) -> List[Dict[str, List[int]]]:
    """Return aromatic rings as ``{"atomIndices": [...]}`` entries.

    Ring perception is not implemented; the result is always empty.
    """
    return []
