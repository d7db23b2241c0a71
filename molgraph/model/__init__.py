"""Model package exports."""

from molgraph.model.state import (
    AssemblyTransform,
    Atom,
    BiologicalAssembly,
    Bond,
    Molecule,
    make_bond,
)

__all__ = [
    "AssemblyTransform",
    "Atom",
    "BiologicalAssembly",
    "Bond",
    "Molecule",
    "make_bond",
]
