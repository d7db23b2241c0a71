from pathlib import Path

import pytest

from molgraph.errors import FormatError
from molgraph.services.xyz import parse_xyz

DATA = Path(__file__).resolve().parent / "data"


def test_water_fixture() -> None:
    molecule = parse_xyz((DATA / "water.xyz").read_text())

    assert molecule.name == "water"
    assert molecule.source_format == "xyz"
    assert [atom.element for atom in molecule.atoms] == ["O", "H", "H"]
    assert [bond.pair for bond in molecule.bonds] == [(0, 1), (0, 2)]


def test_bond_inference_can_be_disabled() -> None:
    molecule = parse_xyz((DATA / "water.xyz").read_text(), infer_bonds=False)
    assert molecule.bonds == ()


def test_blank_lines_are_dropped() -> None:
    text = "\n2\n\ndimer\nC 0 0 0\n\nC 1.5 0 0\n"
    molecule = parse_xyz(text)
    assert molecule.name == "dimer"
    assert len(molecule.atoms) == 2


def test_extra_lines_beyond_count_are_ignored() -> None:
    text = "1\nsingle\nNa 0 0 0\nCl 2.3 0 0\n"
    molecule = parse_xyz(text)
    assert [atom.element for atom in molecule.atoms] == ["Na"]


def test_too_short() -> None:
    with pytest.raises(FormatError, match="file too short"):
        parse_xyz("3\n")


def test_bad_count() -> None:
    with pytest.raises(FormatError, match="cannot parse atom count"):
        parse_xyz("three\nwater\nO 0 0 0\n")


def test_malformed_atom_line() -> None:
    with pytest.raises(FormatError, match="malformed atom line at 3"):
        parse_xyz("1\nbroken\nO 0 0\n")


def test_bad_coordinates() -> None:
    with pytest.raises(FormatError, match="cannot parse coordinates at line 3"):
        parse_xyz("1\nbroken\nO 0 zero 0\n")
