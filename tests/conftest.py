"""Shared test fixtures for the BIOVERSE test suite.

No test touches the network: every HTTP call goes through
``httpx.MockTransport`` via :class:`FakeArchive`.
"""

import httpx
import pytest

from bioverse.settings import ResolverConfig


AF_URL = "https://alphafold.ebi.ac.uk/files/AF-{id}-F1-model_v4.pdb"
AF_URL_V2 = "https://alphafold.ebi.ac.uk/files/AF-{id}-F1.pdb"
AF_URL_V3 = "https://alphafold.ebi.ac.uk/files/AF-{id}.pdb"
RCSB_URL = "https://files.rcsb.org/download/{id}.pdb"
PDBE_URL = "https://www.ebi.ac.uk/pdbe/entry-files/download/{id}.pdb"
UNIPROT_URL = "https://rest.uniprot.org/uniprotkb/{id}"
UNIPROT_SEARCH_URL = "https://rest.uniprot.org/uniprotkb/search"
GEO_ESEARCH_URL = "https://eutils.ncbi.nlm.nih.gov/entrez/eutils/esearch.fcgi"
GEO_ESUMMARY_URL = "https://eutils.ncbi.nlm.nih.gov/entrez/eutils/esummary.fcgi"
BIOSTUDIES_URL = "https://www.ebi.ac.uk/biostudies/api/v1/studies/{id}"
BIOSTUDIES_SEARCH_URL = "https://www.ebi.ac.uk/biostudies/api/v1/studies"
ARRAYEXPRESS_URL = "https://www.ebi.ac.uk/arrayexpress/json/v3/experiments/{id}"


def pdb_atom(serial, name, res, seq, x, y, z, bfactor, element, record="ATOM"):
    """One fixed-column PDB coordinate line."""
    return (
        f"{record:<6}{serial:>5} {name:<4} {res:>3} A{seq:>4}    "
        f"{x:>8.3f}{y:>8.3f}{z:>8.3f}{1.0:>6.2f}{bfactor:>6.2f}          {element:>2}"
    )


def make_pdb(bfactors=(90.0, 80.0, 70.0)):
    lines = ["HEADER    OXYGEN TRANSPORT                        20-JUL-98   1A3N"]
    serial = 1
    for seq, bfactor in enumerate(bfactors, start=1):
        lines.append(pdb_atom(serial, "N", "VAL", seq, 1.0 * seq, 2.0, 3.0, bfactor, "N"))
        lines.append(pdb_atom(serial + 1, " CA ", "VAL", seq, 1.5 * seq, 2.5, 3.5, bfactor, "C"))
        serial += 2
    lines.append(pdb_atom(serial, "FE", "HEM", 200, 0.0, 0.0, 0.0, 20.0, "FE", record="HETATM"))
    lines.append("END")
    return "\n".join(lines) + "\n"


class FakeArchive:
    """Routes requests to canned responses and records every URL requested.

    A route value may be a ``(status, body)`` tuple, a list of them (served
    in order, the last one repeating), an exception class to raise, or a
    callable taking the request. Unknown URLs get a 404.
    """

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.requests: list[httpx.Request] = []
        self._served: dict[str, int] = {}

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = f"{request.url.scheme}://{request.url.host}{request.url.path}"
        route = self.routes.get(url)
        if route is None:
            return httpx.Response(404, text="Not Found")
        if isinstance(route, type) and issubclass(route, Exception):
            raise route("simulated failure", request=request)
        if callable(route):
            return route(request)
        if isinstance(route, list):
            idx = self._served.get(url, 0)
            self._served[url] = idx + 1
            route = route[min(idx, len(route) - 1)]
        status, body = route
        if isinstance(body, (dict, list)):
            return httpx.Response(status, json=body)
        return httpx.Response(status, text=body)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    @property
    def urls(self) -> list[str]:
        return [f"{r.url.scheme}://{r.url.host}{r.url.path}" for r in self.requests]


class FakeClock:
    """Manually advanced epoch clock."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Async sleep stand-in that records requested delays without waiting."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def pdb_text():
    """A minimal PDB file: three residues (CA pLDDT 90/80/70) plus a HETATM."""
    return make_pdb()


@pytest.fixture
def json_error_body():
    """What an archive returns with 200 OK when the entry does not exist."""
    return '{"status": "error", "message": "Entry not found"}'


@pytest.fixture
def config():
    """Default endpoints, fast retries."""
    return ResolverConfig(max_attempts=3, base_delay=0.0, timeout=5.0)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def archive():
    return FakeArchive()


@pytest.fixture
def uniprot_entry():
    """Trimmed UniProtKB JSON for human hemoglobin alpha."""
    return {
        "primaryAccession": "P69905",
        "uniProtkbId": "HBA_HUMAN",
        "proteinDescription": {
            "recommendedName": {"fullName": {"value": "Hemoglobin subunit alpha"}},
        },
        "organism": {"scientificName": "Homo sapiens"},
        "sequence": {"value": "MVLSPADKTNVKAAWGKVGAHAGEYGAEALERMFLSFPTTKTYFPHF", "length": 142},
        "features": [
            {
                "type": "Chain",
                "location": {"start": {"value": 2}, "end": {"value": 142}},
                "description": "Hemoglobin subunit alpha",
            },
            {
                "type": "Binding site",
                "location": {"start": {"value": 59}, "end": {"value": 59}},
                "description": "",
            },
        ],
        "uniProtKBCrossReferences": [
            {"database": "EMBL", "id": "V00488"},
            {"database": "PDB", "id": "1a3n"},
        ],
    }


@pytest.fixture
def geo_search():
    """esearch answer for GSE2034 on db=gds."""
    return {"esearchresult": {"count": "1", "idlist": ["200002034"]}}


@pytest.fixture
def geo_summary():
    """esummary record for the uid in ``geo_search``."""
    return {
        "result": {
            "uids": ["200002034"],
            "200002034": {
                "accession": "GSE2034",
                "title": "Breast cancer relapse free survival",
                "summary": "Primary breast tumors from lymph-node negative patients.",
                "taxon": "Homo sapiens",
                "gpl": "96",
                "samples": [
                    {"accession": "GSM36777", "title": "relapse, tumor 1"},
                    {"accession": "GSM36778", "title": "no relapse, tumor 2"},
                ],
            },
        }
    }


@pytest.fixture
def biostudies_study():
    """Trimmed BioStudies JSON for an ArrayExpress study."""
    return {
        "accno": "E-MTAB-1234",
        "attributes": [{"name": "Title", "value": "Transcription profiling of yeast heat shock"}],
        "section": {
            "type": "Study",
            "attributes": [
                {"name": "Description", "value": "Heat shock time course"},
                {"name": "Organism", "value": "Saccharomyces cerevisiae"},
                {"name": "Study type", "value": "transcription profiling by array"},
            ],
            "subsections": [
                {"type": "Samples", "subsections": []},
                [{"type": "Publication"}],
                {
                    "type": "Assays and Data",
                    "subsections": [
                        {
                            "type": "Raw Data",
                            "files": [[
                                {
                                    "path": "hs_0min.CEL",
                                    "attributes": [
                                        {"name": "Samples", "value": "control"},
                                        {"name": "Description", "value": "25C"},
                                    ],
                                },
                                {"path": "hs_15min.CEL", "attributes": []},
                            ]],
                        }
                    ],
                },
            ],
        },
    }


@pytest.fixture
def arrayexpress_experiment():
    """Legacy ArrayExpress JSON v3 experiment with two samples."""
    return {
        "experiment": {
            "accession": "E-MTAB-1234",
            "organism": "Saccharomyces cerevisiae",
            "platform": "A-AFFY-47",
            "samples": {
                "sample": [
                    {
                        "accession": "S1",
                        "characteristics": [
                            {"category": "condition", "value": "heat shock"},
                            {"category": "expression", "value": 7.5},
                        ],
                    },
                    {"accession": "S2", "characteristics": []},
                ]
            },
        }
    }
