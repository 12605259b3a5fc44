"""Content validation for PDB-format structure payloads.

Acceptance is decided from the body alone. Status codes and content-type
headers are never consulted: archives happily serve HTML error pages and
JSON error envelopes with ``200 OK`` and ``text/plain``.
"""

from __future__ import annotations

import re

# Atomic-coordinate records in fixed PDB column layout: record name padded
# to six columns, then an atom serial number.
_COORDINATE_RECORD = re.compile(r"^(?:ATOM  |HETATM)\s*\d+", re.MULTILINE)


class PdbValidator:
    """Accept a payload only if it carries at least one ATOM/HETATM record.

    Provider-agnostic: one instance is shared by every adapter that
    produces PDB files.
    """

    format_name = "pdb"

    def validate(self, raw_payload: str | bytes | None) -> bool:
        if not raw_payload:
            return False
        if isinstance(raw_payload, bytes):
            raw_payload = raw_payload.decode("utf-8", errors="replace")
        return _COORDINATE_RECORD.search(raw_payload) is not None


def is_structure_payload(raw_payload: str | bytes | None) -> bool:
    """Module-level shortcut used by model validation."""
    return PdbValidator().validate(raw_payload)


def extract_plddt(raw_payload: str) -> list[float]:
    """Per-residue confidence from the B-factor column of CA atoms.

    AlphaFold stores pLDDT (0-100) in the B-factor field. Lines with a
    malformed B-factor are skipped.
    """
    scores: list[float] = []
    for line in raw_payload.splitlines():
        if line.startswith("ATOM") and line[12:16].strip() == "CA":
            try:
                scores.append(float(line[60:66]))
            except (ValueError, IndexError):
                continue
    return scores
