"""Composition and connectivity summaries built with pandas."""

from __future__ import annotations

from dataclasses import dataclass
import logging
import math
from typing import Dict, Optional

import numpy as np
import pandas as pd

from molgraph.model.state import Molecule
from molgraph.services.elements import atomic_mass

logger = logging.getLogger(__name__)

BOND_LABELS = {1: "Single", 2: "Double", 3: "Triple"}
UNKNOWN_CHAIN = "Unknown"


@dataclass(frozen=True)
class MoleculeAnalysis:
    """Summary tables for a molecule.

    Attributes
    ----------
    formula
        Molecular formula with carbon first, hydrogen second and the
        remaining elements alphabetically.
    molecular_weight
        Sum of atomic masses in g/mol.
    element_counts
        Columns ``element``, ``count``, ``mass``.
    bond_counts
        Columns ``order``, ``label``, ``count`` for orders present.
    chain_summary
        Columns ``chain``, ``residues``, ``atoms``.
    total_atoms
        Atom count.
    total_bonds
        Bond count.
    """

    formula: str
    molecular_weight: float
    element_counts: pd.DataFrame
    bond_counts: pd.DataFrame
    chain_summary: pd.DataFrame
    total_atoms: int
    total_bonds: int

    def to_dict(self) -> Dict[str, object]:
        """Return a JSON-ready payload with tables as columns/rows."""
        return {
            "formula": self.formula,
            "molecularWeight": self.molecular_weight,
            "elementCounts": _df_to_table(self.element_counts),
            "bondCounts": _df_to_table(self.bond_counts),
            "chainSummary": _df_to_table(self.chain_summary),
            "totalAtoms": self.total_atoms,
            "totalBonds": self.total_bonds,
        }


def analyze_molecule(molecule: Molecule) -> MoleculeAnalysis:
    """Summarize composition, bond orders and chains.

    Parameters
    ----------
    molecule
        Molecule to summarize.

    Returns
    -------
    MoleculeAnalysis
        Formula, weight and summary tables.
    """

    element_df = _build_element_table(molecule)
    formula = "".join(
        element if count == 1 else f"{element}{count}"
        for element, count in zip(element_df["element"], element_df["count"])
    )
    weight = float((element_df["count"] * element_df["mass"]).sum())
    analysis = MoleculeAnalysis(
        formula=formula,
        molecular_weight=weight,
        element_counts=element_df,
        bond_counts=_build_bond_table(molecule),
        chain_summary=_build_chain_table(molecule),
        total_atoms=len(molecule.atoms),
        total_bonds=len(molecule.bonds),
    )
    logger.debug(
        "Analyzed '%s': formula=%s weight=%.3f", molecule.name, formula, weight
    )
    return analysis


def format_molecular_weight(weight: float) -> str:
    return f"{weight:.2f} g/mol"


def _element_sort_key(element: str):
    if element == "C":
        return (0, element)
    if element == "H":
        return (1, element)
    return (2, element)


def _build_element_table(molecule: Molecule) -> pd.DataFrame:
    elements = pd.Series([atom.element for atom in molecule.atoms], dtype=object)
    counts = elements.value_counts()
    ordered = sorted(counts.index, key=_element_sort_key)
    return pd.DataFrame(
        {
            "element": ordered,
            "count": [int(counts[element]) for element in ordered],
            "mass": [atomic_mass(element) for element in ordered],
        },
        columns=["element", "count", "mass"],
    )


def _build_bond_table(molecule: Molecule) -> pd.DataFrame:
    orders = pd.Series([bond.order for bond in molecule.bonds], dtype="int64")
    counts = orders.value_counts()
    rows = [
        (order, label, int(counts[order]))
        for order, label in BOND_LABELS.items()
        if order in counts.index
    ]
    return pd.DataFrame(rows, columns=["order", "label", "count"])


def _build_chain_table(molecule: Molecule) -> pd.DataFrame:
    if not molecule.atoms:
        return pd.DataFrame(columns=["chain", "residues", "atoms"])
    df = pd.DataFrame(
        {
            "chain": [atom.chain_id or UNKNOWN_CHAIN for atom in molecule.atoms],
            "residue": [
                f"{atom.residue_name}{atom.residue_number}"
                if atom.residue_name and atom.residue_number is not None
                else None
                for atom in molecule.atoms
            ],
        }
    )
    grouped = df.groupby("chain", sort=True).agg(
        residues=("residue", "nunique"), atoms=("residue", "size")
    )
    return grouped.reset_index()[["chain", "residues", "atoms"]]


def _df_to_table(df: pd.DataFrame) -> Dict[str, object]:
    safe = df.astype(object).where(pd.notnull(df), None)
    columns = [str(col) for col in safe.columns]
    rows = [[_to_native(value) for value in row] for row in safe.itertuples(index=False)]
    return {"columns": columns, "rows": rows}


def _to_native(value: object) -> Optional[object]:
    if value is None:
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    if isinstance(value, (np.integer, np.floating)):
        return value.item()
    if isinstance(value, np.bool_):
        return bool(value)
    return value
