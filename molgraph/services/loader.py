"""Molecule loading utilities."""

from __future__ import annotations

import gzip
import logging
import os
import time
from typing import Callable, Dict, Optional

from molgraph.config import BOND_TOLERANCE, FORMAT_EXTENSIONS, MAX_FILE_SIZE
from molgraph.errors import FormatError, LoadError
from molgraph.model.state import Molecule
from molgraph.services.pdb import parse_pdb
from molgraph.services.sdf import parse_sdf
from molgraph.services.xyz import parse_xyz

logger = logging.getLogger(__name__)

_GZIP_SUFFIX = ".gz"
_GZIP_MAGIC = b"\x1f\x8b"


def _parse_sdf_text(text: str, infer_bonds: bool, tolerance: float) -> Molecule:
    return parse_sdf(text)


_PARSERS: Dict[str, Callable[[str, bool, float], Molecule]] = {
    "pdb": parse_pdb,
    "sdf": _parse_sdf_text,
    "xyz": parse_xyz,
}


def detect_format(path: str) -> str:
    """Return the format name for a file path.

    Parameters
    ----------
    path
        File path; a trailing ``.gz`` is ignored.

    Returns
    -------
    str
        One of ``"pdb"``, ``"sdf"`` or ``"xyz"``.

    Raises
    ------
    LoadError
        If the extension is not recognised.
    """

    name = os.path.basename(path or "").lower()
    if name.endswith(_GZIP_SUFFIX):
        name = name[: -len(_GZIP_SUFFIX)]
    _, ext = os.path.splitext(name)
    fmt = FORMAT_EXTENSIONS.get(ext)
    if fmt is None:
        raise LoadError(
            "unsupported_format",
            f"Unsupported file format '{ext or name}'",
            sorted(FORMAT_EXTENSIONS),
        )
    return fmt


def parse_text(
    text: str,
    fmt: str,
    infer_bonds: bool = True,
    tolerance: float = BOND_TOLERANCE,
) -> Molecule:
    """Parse text in the given format.

    SDF input ignores ``infer_bonds`` and ``tolerance``.
    """

    parser = _PARSERS.get((fmt or "").lower())
    if parser is None:
        raise LoadError("unsupported_format", f"Unsupported file format '{fmt}'")
    return parser(text, infer_bonds, tolerance)


def _read_bytes(path: str, max_file_size: int) -> bytes:
    if not path or not os.path.isfile(path):
        raise LoadError("file_not_found", "File not found", path)
    size = os.path.getsize(path)
    if size == 0:
        raise LoadError("empty_file", "File is empty", path)
    if size > max_file_size:
        raise LoadError(
            "file_too_large",
            "File is too large",
            {"path": path, "size": size, "limit": max_file_size},
        )
    with open(path, "rb") as handle:
        data = handle.read()
    if data[:2] == _GZIP_MAGIC:
        try:
            data = gzip.decompress(data)
        except (OSError, EOFError) as exc:
            raise LoadError("load_failed", "Failed to decompress file", str(exc)) from exc
        if len(data) > max_file_size:
            raise LoadError(
                "file_too_large",
                "Decompressed file is too large",
                {"path": path, "size": len(data), "limit": max_file_size},
            )
    return data


def load_molecule(
    path: str,
    fmt: Optional[str] = None,
    infer_bonds: bool = True,
    tolerance: float = BOND_TOLERANCE,
    max_file_size: int = MAX_FILE_SIZE,
) -> Molecule:
    """Load a molecule from a PDB, SDF or XYZ file.

    Parameters
    ----------
    path
        Path to the structure file, optionally gzip-compressed.
    fmt
        Format name; detected from the extension when omitted.
    infer_bonds
        Infer bonds from distances for PDB and XYZ input.
    tolerance
        Bond inference tolerance in Angstroms.
    max_file_size
        Largest accepted file size in bytes, before and after decompression.

    Returns
    -------
    Molecule
        Parsed molecule.

    Raises
    ------
    LoadError
        If the file is missing, empty, too large or of an unknown format.
    FormatError
        If the content cannot be parsed.
    """

    fmt = fmt or detect_format(path)
    total_start = time.perf_counter()
    data = _read_bytes(path, max_file_size)
    read_time = time.perf_counter() - total_start
    text = data.decode("utf-8", errors="replace")

    parse_start = time.perf_counter()
    try:
        molecule = parse_text(text, fmt, infer_bonds=infer_bonds, tolerance=tolerance)
    except FormatError:
        logger.debug("Parsing %s as %s failed", path, fmt)
        raise
    parse_time = time.perf_counter() - parse_start

    logger.debug(
        "Loaded %s (%s): atoms=%d bonds=%d read=%.3fs parse=%.3fs total=%.3fs",
        path,
        fmt,
        len(molecule.atoms),
        len(molecule.bonds),
        read_time,
        parse_time,
        time.perf_counter() - total_start,
    )
    return molecule
