from pathlib import Path

import pytest

from molgraph.services.pdb import parse_pdb
from molgraph.services.pdb_writer import write_pdb

DATA = Path(__file__).resolve().parent / "data"


def _universe(path: Path):
    mda = pytest.importorskip("MDAnalysis")
    return mda.Universe(str(path))


def test_pdb_atoms_match_mdanalysis() -> None:
    pdb_path = DATA / "glygly.pdb"
    universe = _universe(pdb_path)
    molecule = parse_pdb(pdb_path.read_text())

    assert len(universe.atoms) == len(molecule.atoms)
    for theirs, ours in zip(universe.atoms, molecule.atoms):
        assert ours.name == theirs.name
        assert ours.residue_name == theirs.resname
        assert ours.residue_number == theirs.resid
        assert ours.chain_id == theirs.chainID
        assert ours.element == theirs.element.title()
        assert ours.coords == pytest.approx(tuple(theirs.position), abs=1e-3)


def test_written_pdb_conect_matches_mdanalysis(tmp_path: Path) -> None:
    molecule = parse_pdb((DATA / "glygly.pdb").read_text())
    out_path = tmp_path / "glygly_conect.pdb"
    out_path.write_text(write_pdb(molecule))
    universe = _universe(out_path)

    theirs = sorted(tuple(sorted(bond.indices.tolist())) for bond in universe.bonds)
    assert theirs == [bond.pair for bond in molecule.bonds]
