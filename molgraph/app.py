"""Molgraph command-line application."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Dict, List, Optional

from molgraph import config
from molgraph.errors import MolgraphError
from molgraph.logging_config import configure_logging
from molgraph.model.state import Molecule
from molgraph.services.analysis import analyze_molecule, format_molecular_weight
from molgraph.services.loader import load_molecule
from molgraph.services.pdb_writer import write_pdb
from molgraph.worker import Worker

logger = logging.getLogger(__name__)


def _parse_args(argv: List[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog=config.APP_NAME,
        description="Parse PDB, SDF and XYZ files and summarize their bond graphs",
    )
    parser.add_argument("paths", nargs="+", metavar="PATH", help="Structure file(s)")
    parser.add_argument(
        "--format",
        dest="fmt",
        choices=sorted(set(config.FORMAT_EXTENSIONS.values())),
        default=None,
        help="Input format (detected from the extension by default)",
    )
    parser.add_argument(
        "--no-infer-bonds",
        dest="infer_bonds",
        action="store_false",
        help="Do not infer bonds from distances",
    )
    parser.add_argument(
        "--tolerance",
        type=float,
        default=config.BOND_TOLERANCE,
        help="Bond inference tolerance in Angstroms",
    )
    parser.add_argument(
        "--json", dest="as_json", action="store_true", help="Print one JSON object per file"
    )
    parser.add_argument(
        "--write-pdb",
        dest="write_pdb",
        default=None,
        metavar="OUT",
        help="Write the parsed molecule as PDB (single input only)",
    )
    parser.add_argument(
        "--jobs",
        type=int,
        default=0,
        help="Parse files on this many worker processes (0 parses in a thread)",
    )
    parser.add_argument(
        "--log-file",
        dest="log_file",
        default=None,
        help="Write logs to this file instead of stderr",
    )
    parser.add_argument(
        "--log-level",
        dest="log_level",
        default="WARNING",
        help="Log level name (DEBUG, INFO, WARNING, ...)",
    )
    args = parser.parse_args(argv[1:])
    if args.write_pdb and len(args.paths) > 1:
        parser.error("--write-pdb accepts a single input file")
    if args.jobs < 0:
        parser.error("--jobs must be zero or positive")
    return args


def _summary_lines(path: str, molecule: Molecule, analysis) -> List[str]:
    lines = [
        path,
        f"  name: {molecule.name}",
        f"  format: {molecule.source_format}",
        f"  atoms: {len(molecule.atoms)}",
        f"  bonds: {len(molecule.bonds)}",
        f"  formula: {analysis.formula}",
        f"  weight: {format_molecular_weight(analysis.molecular_weight)}",
    ]
    if molecule.warnings:
        lines.append(f"  skipped records: {len(molecule.warnings)}")
    return lines


def _report(path: str, molecule: Molecule, as_json: bool) -> None:
    analysis = analyze_molecule(molecule)
    if as_json:
        payload: Dict[str, object] = {
            "path": path,
            "molecule": molecule.to_dict(),
            "analysis": analysis.to_dict(),
        }
        print(json.dumps(payload))
    else:
        print("\n".join(_summary_lines(path, molecule, analysis)))


def run(args: argparse.Namespace) -> int:
    """Load every input file and print its summary.

    Parameters
    ----------
    args
        Parsed command-line arguments.

    Returns
    -------
    int
        0 when every file loaded, 1 otherwise.
    """

    worker = Worker(max_workers=1, max_processes=args.jobs)
    failures = 0
    try:
        futures = [
            (
                path,
                worker.submit_cpu(
                    load_molecule,
                    path,
                    args.fmt,
                    infer_bonds=args.infer_bonds,
                    tolerance=args.tolerance,
                ),
            )
            for path in args.paths
        ]
        for path, future in futures:
            try:
                molecule = future.result()
                _report(path, molecule, args.as_json)
                if args.write_pdb:
                    with open(args.write_pdb, "w", encoding="utf-8") as handle:
                        handle.write(write_pdb(molecule))
                    logger.info("Wrote %s", args.write_pdb)
            except MolgraphError as exc:
                logger.error("Failed to process %s: %s", path, exc.message)
                print(f"{path}: error: {exc.message}", file=sys.stderr)
                failures += 1
            except Exception as exc:
                logger.exception("Unexpected error processing %s", path)
                print(f"{path}: error: {exc}", file=sys.stderr)
                failures += 1
    finally:
        worker.shutdown()
    return 1 if failures else 0


def main(argv: Optional[List[str]] = None) -> int:
    """Run the molgraph command line.

    Parameters
    ----------
    argv
        Full argument vector including the program name; ``sys.argv`` when
        omitted.

    Returns
    -------
    int
        Process exit status.
    """

    args = _parse_args(sys.argv if argv is None else argv)
    configure_logging(args.log_file, args.log_level)
    logger.debug("Starting %s with %d input(s)", config.APP_NAME, len(args.paths))
    return run(args)


if __name__ == "__main__":
    sys.exit(main())
