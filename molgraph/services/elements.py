"""Element property table and symbol helpers."""

from __future__ import annotations

from typing import Dict, Optional, Tuple

from molgraph.config import DEFAULT_COVALENT_RADIUS

# symbol: (covalent radius in Angstroms, atomic mass)
ELEMENTS: Dict[str, Tuple[float, float]] = {
    "H": (0.31, 1.008),
    "He": (0.28, 4.003),
    "Li": (1.28, 6.941),
    "Be": (0.96, 9.012),
    "B": (0.84, 10.81),
    "C": (0.76, 12.011),
    "N": (0.71, 14.007),
    "O": (0.66, 15.999),
    "F": (0.57, 18.998),
    "Ne": (0.58, 20.18),
    "Na": (1.66, 22.99),
    "Mg": (1.41, 24.305),
    "Al": (1.21, 26.982),
    "Si": (1.11, 28.086),
    "P": (1.07, 30.974),
    "S": (1.05, 32.065),
    "Cl": (1.02, 35.453),
    "Ar": (1.06, 39.948),
    "K": (2.03, 39.098),
    "Ca": (1.76, 40.078),
    "Fe": (1.32, 55.845),
    "Co": (1.26, 58.933),
    "Ni": (1.24, 58.693),
    "Cu": (1.32, 63.546),
    "Zn": (1.22, 65.38),
    "Se": (1.20, 78.971),
    "Br": (1.20, 79.904),
    "I": (1.39, 126.904),
}

_TWO_LETTER = {
    "CL",
    "BR",
    "NA",
    "MG",
    "ZN",
    "FE",
    "CA",
    "LI",
    "SI",
    "AL",
    "CU",
    "MN",
    "CO",
    "NI",
    "CD",
    "HG",
    "PB",
    "AG",
    "AU",
    "SE",
}


def normalize_symbol(symbol: str) -> str:
    """Return the canonical capitalisation of an element symbol.

    Parameters
    ----------
    symbol
        Symbol in any case, possibly padded.

    Returns
    -------
    str
        Symbol with the first letter upper case and the rest lower case.
    """

    symbol = (symbol or "").strip()
    if not symbol:
        return ""
    return symbol[0].upper() + symbol[1:].lower()


def covalent_radius(symbol: str) -> float:
    """Return the covalent radius for an element, 1.5 A when unknown."""
    entry = ELEMENTS.get(normalize_symbol(symbol))
    if entry is None:
        return DEFAULT_COVALENT_RADIUS
    return entry[0]


def atomic_mass(symbol: str) -> float:
    """Return the atomic mass for an element, 0.0 when unknown."""
    entry = ELEMENTS.get(normalize_symbol(symbol))
    if entry is None:
        return 0.0
    return entry[1]


def guess_element(atom_name: str) -> Optional[str]:
    """Guess an element symbol from a PDB atom-name field.

    Parameters
    ----------
    atom_name
        Raw 4-column atom-name field (columns 13-16), unstripped so that
        the column alignment is preserved.

    Returns
    -------
    str or None
        Canonical symbol, or ``None`` if the name has no letters.

    Notes
    -----
    Two-letter elements are written starting in column 13 while one-letter
    elements start in column 14, so ``" CA "`` is carbon and ``"CA  "`` is
    calcium. Four-character names starting with H are hydrogens.
    """

    raw = atom_name or ""
    name = raw.strip()
    if not name:
        return None
    i = 0
    while i < len(name) and name[i].isdigit():
        i += 1
    letters = ""
    for char in name[i:]:
        if not char.isalpha():
            break
        letters += char
    if not letters:
        return None
    if len(letters) > 1:
        upper = letters[:2].upper()
        left_aligned = raw[:1].isalpha()
        hydrogen_name = len(name) == 4 and upper[0] == "H"
        if upper in _TWO_LETTER and left_aligned and not hydrogen_name:
            return upper[0] + upper[1].lower()
        if letters[1].islower() and normalize_symbol(letters[:2]) in ELEMENTS:
            return normalize_symbol(letters[:2])
    return letters[0].upper()
