from pathlib import Path

import pytest

from molgraph.errors import FormatError
from molgraph.services.pdb import parse_pdb

DATA = Path(__file__).resolve().parent / "data"


def _atom_line(
    serial: int,
    name: str,
    resname: str,
    chain: str,
    resseq: int,
    x: float,
    y: float,
    z: float,
    element: str,
    record: str = "ATOM",
) -> str:
    return (
        f"{record:<6}{serial:5d} {name:<4} {resname:<3} {chain:1}{resseq:4d}    "
        f"{x:8.3f}{y:8.3f}{z:8.3f}{1.0:6.2f}{0.0:6.2f}          {element:>2}"
    )


def _conect(*serials: int) -> str:
    return "CONECT" + "".join(f"{serial:5d}" for serial in serials)


def test_glygly_fields_and_inferred_bonds() -> None:
    molecule = parse_pdb((DATA / "glygly.pdb").read_text())

    assert molecule.name == "GLYCYLGLYCINE"
    assert molecule.source_format == "pdb"
    assert len(molecule.atoms) == 10
    assert [atom.index for atom in molecule.atoms] == list(range(10))

    ca = molecule.atoms[1]
    assert ca.element == "C"
    assert ca.name == "CA"
    assert ca.residue_name == "GLY"
    assert ca.residue_number == 1
    assert ca.chain_id == "A"
    assert ca.serial == 2
    assert ca.coords == pytest.approx((1.458, 0.0, 0.0))
    assert ca.temp_factor == pytest.approx(10.0)
    assert not ca.is_hetero

    water = molecule.atoms[9]
    assert water.is_hetero
    assert water.residue_name == "HOH"
    assert water.residue_number == 101

    assert [bond.pair for bond in molecule.bonds] == [
        (0, 1),
        (1, 2),
        (2, 3),
        (2, 4),
        (4, 5),
        (5, 6),
        (6, 7),
        (6, 8),
    ]
    assert molecule.warnings == ()


def test_inference_disabled_without_conect() -> None:
    text = (DATA / "glygly.pdb").read_text()
    molecule = parse_pdb(text, infer_bonds=False)
    assert len(molecule.atoms) == 10
    assert molecule.bonds == ()


def test_hetatm_pair_without_conect_is_bonded() -> None:
    text = "\n".join(
        [
            _atom_line(1, "N1", "LIG", "A", 1, 0.0, 0.0, 0.0, "N", record="HETATM"),
            _atom_line(2, "C1", "LIG", "A", 1, 1.2, 0.7, 0.0, "C", record="HETATM"),
        ]
    )
    molecule = parse_pdb(text)
    assert [bond.pair for bond in molecule.bonds] == [(0, 1)]


def test_conect_records_take_precedence_over_inference() -> None:
    # Atoms 1 and 3 are far apart, atoms 1 and 2 are close.
    text = "\n".join(
        [
            _atom_line(1, "C1", "LIG", "A", 1, 0.0, 0.0, 0.0, "C", record="HETATM"),
            _atom_line(2, "C2", "LIG", "A", 1, 1.5, 0.0, 0.0, "C", record="HETATM"),
            _atom_line(3, "O1", "LIG", "A", 1, 8.0, 0.0, 0.0, "O", record="HETATM"),
            _conect(1, 3),
            _conect(3, 1),
            "END",
        ]
    )
    molecule = parse_pdb(text)
    assert [(bond.pair, bond.order) for bond in molecule.bonds] == [((0, 2), 1)]


def test_conect_to_unknown_serial_is_ignored() -> None:
    text = "\n".join(
        [
            _atom_line(10, "C1", "LIG", "A", 1, 0.0, 0.0, 0.0, "C", record="HETATM"),
            _atom_line(20, "C2", "LIG", "A", 1, 1.5, 0.0, 0.0, "C", record="HETATM"),
            _conect(10, 20, 99),
            _conect(99, 10),
        ]
    )
    molecule = parse_pdb(text)
    assert [bond.pair for bond in molecule.bonds] == [(0, 1)]


def test_only_first_model_is_read() -> None:
    text = "\n".join(
        [
            "MODEL        1",
            _atom_line(1, "C1", "LIG", "A", 1, 0.0, 0.0, 0.0, "C"),
            _atom_line(2, "C2", "LIG", "A", 1, 1.5, 0.0, 0.0, "C"),
            "ENDMDL",
            "MODEL        2",
            _atom_line(1, "C1", "LIG", "A", 1, 0.0, 0.0, 5.0, "C"),
            _atom_line(2, "C2", "LIG", "A", 1, 1.5, 0.0, 5.0, "C"),
            "ENDMDL",
            _conect(1, 2),
            "END",
        ]
    )
    molecule = parse_pdb(text, infer_bonds=False)
    assert len(molecule.atoms) == 2
    assert molecule.atoms[0].z == pytest.approx(0.0)
    assert [bond.pair for bond in molecule.bonds] == [(0, 1)]


def test_records_after_end_are_ignored() -> None:
    text = "\n".join(
        [
            _atom_line(1, "C1", "LIG", "A", 1, 0.0, 0.0, 0.0, "C"),
            "END",
            _atom_line(2, "C2", "LIG", "A", 1, 1.5, 0.0, 0.0, "C"),
        ]
    )
    assert len(parse_pdb(text).atoms) == 1


def test_malformed_coordinates_are_skipped_with_warning() -> None:
    bad = _atom_line(2, "C2", "LIG", "A", 1, 0.0, 0.0, 0.0, "C")
    bad = bad[:30] + "   abcde" + bad[38:]
    text = "\n".join(
        [
            _atom_line(1, "C1", "LIG", "A", 1, 0.0, 0.0, 0.0, "C"),
            bad,
            _atom_line(3, "C3", "LIG", "A", 1, 1.5, 0.0, 0.0, "C"),
        ]
    )
    molecule = parse_pdb(text)
    assert [atom.serial for atom in molecule.atoms] == [1, 3]
    assert [atom.index for atom in molecule.atoms] == [0, 1]
    assert len(molecule.warnings) == 1
    assert molecule.warnings[0].startswith("line 2:")


def test_element_guessed_from_name_when_column_missing() -> None:
    line = _atom_line(1, "CA", "CA", "A", 1, 0.0, 0.0, 0.0, "")
    line = line[:12] + "CA  " + line[16:]
    molecule = parse_pdb(line.rstrip())
    assert molecule.atoms[0].element == "Ca"


def test_crlf_line_endings() -> None:
    text = (DATA / "glygly.pdb").read_text().replace("\n", "\r\n")
    assert len(parse_pdb(text).atoms) == 10


def test_default_name_without_header() -> None:
    text = _atom_line(1, "C1", "LIG", "A", 1, 0.0, 0.0, 0.0, "C")
    assert parse_pdb(text).name == "Molecule"


@pytest.mark.parametrize("text", ["", "REMARK nothing here\nEND\n"])
def test_no_atoms_is_an_error(text: str) -> None:
    with pytest.raises(FormatError, match="No valid atoms found in PDB file") as excinfo:
        parse_pdb(text)
    assert excinfo.value.code == "no_atoms"


def test_all_atoms_malformed_reports_skipped_records() -> None:
    line = _atom_line(1, "C1", "LIG", "A", 1, 0.0, 0.0, 0.0, "C")
    with pytest.raises(FormatError) as excinfo:
        parse_pdb(line[:30])
    assert excinfo.value.details


HELIX_SHEET_HEADER = [
    "HELIX    1   1 ALA A    2  ALA A    3  1                                   2",
    "SHEET    1   A 2 ALA A   5  ALA A   6  0",
]


def _alanine_chain() -> list:
    return [
        _atom_line(i, "CA", "ALA", "A", i, 3.8 * i, 0.0, 0.0, "C") for i in range(1, 8)
    ] + [_atom_line(8, "O", "HOH", "", 100, 50.0, 0.0, 0.0, "O", record="HETATM")]


def test_helix_and_sheet_ranges_assign_secondary_structure() -> None:
    text = "\n".join(HELIX_SHEET_HEADER + _alanine_chain() + ["END"])
    molecule = parse_pdb(text)

    assert [atom.secondary_structure for atom in molecule.atoms] == [
        "coil",
        "helix",
        "helix",
        "coil",
        "sheet",
        "sheet",
        "coil",
        None,
    ]


def test_no_secondary_structure_without_helix_or_sheet() -> None:
    molecule = parse_pdb((DATA / "glygly.pdb").read_text())

    assert all(atom.secondary_structure is None for atom in molecule.atoms)
    assert molecule.assemblies == ()


def test_biomt_records_become_assemblies() -> None:
    remarks = [
        "REMARK 350 BIOMOLECULE: 1",
        "REMARK 350 APPLY THE FOLLOWING TO CHAINS: A, B",
        "REMARK 350   BIOMT1   1  1.000000  0.000000  0.000000        0.00000",
        "REMARK 350   BIOMT2   1  0.000000  1.000000  0.000000        0.00000",
        "REMARK 350   BIOMT3   1  0.000000  0.000000  1.000000        0.00000",
        "REMARK 350   BIOMT1   2 -1.000000  0.000000  0.000000       10.00000",
        "REMARK 350   BIOMT2   2  0.000000 -1.000000  0.000000        0.00000",
        "REMARK 350   BIOMT3   2  0.000000  0.000000  1.000000        0.00000",
        "REMARK 350 BIOMOLECULE: 2",
        "REMARK 350 APPLY THE FOLLOWING TO CHAINS: A",
        "REMARK 350   BIOMT1   1  1.000000  0.000000  0.000000        0.00000",
    ]
    text = "\n".join(remarks + [_atom_line(1, "C1", "LIG", "A", 1, 0.0, 0.0, 0.0, "C"), "END"])
    molecule = parse_pdb(text)

    # Assembly 2 has no complete operator.
    assert [assembly.id for assembly in molecule.assemblies] == ["1"]
    assembly = molecule.assemblies[0]
    assert assembly.copy_count == 2
    first, second = assembly.transforms
    assert first.operator_id == 1
    assert first.chain_ids == ("A", "B")
    assert first.matrix == (
        1.0, 0.0, 0.0, 0.0,
        0.0, 1.0, 0.0, 0.0,
        0.0, 0.0, 1.0, 0.0,
        0.0, 0.0, 0.0, 1.0,
    )
    assert second.matrix[:4] == (-1.0, 0.0, 0.0, 10.0)

    payload = molecule.to_dict()["assemblies"]
    assert payload[0]["copyCount"] == 2
    assert payload[0]["transforms"][1]["chainIds"] == ["A", "B"]


def test_compound_name_used_without_header() -> None:
    text = "\n".join(
        [
            "COMPND    MOL_ID: 1;",
            "COMPND   2 MOLECULE: LYSOZYME C;",
            _atom_line(1, "C1", "LIG", "A", 1, 0.0, 0.0, 0.0, "C"),
            "END",
        ]
    )
    assert parse_pdb(text).name == "LYSOZYME C"
    assert parse_pdb("HEADER    HYDROLASE\n" + text).name == "HYDROLASE"
