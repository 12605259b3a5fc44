"""Tests for FastAPI API endpoints using TestClient."""

import asyncio
import contextlib
import logging

import httpx
import pytest
from fastapi.testclient import TestClient

from bioverse.api.main import create_app, periodic_sweep
from bioverse.cache.store import CacheNamespace, InMemoryCacheStore, SQLiteCacheStore
from bioverse.exceptions import CacheUnavailableError
from bioverse.settings import BioverseSettings
from tests.conftest import (
    ARRAYEXPRESS_URL,
    BIOSTUDIES_SEARCH_URL,
    BIOSTUDIES_URL,
    GEO_ESEARCH_URL,
    GEO_ESUMMARY_URL,
    PDBE_URL,
    RCSB_URL,
    UNIPROT_SEARCH_URL,
    UNIPROT_URL,
    FakeArchive,
)


@pytest.fixture
def settings(tmp_path):
    return BioverseSettings(
        retry_base_delay=0.0,
        cache_path=tmp_path / "cache.sqlite3",
        sweep_interval=0.0,
    )


@pytest.fixture
def store(clock):
    return InMemoryCacheStore(clock=clock)


@pytest.fixture
def archive(pdb_text, uniprot_entry, geo_search, geo_summary, biostudies_study, arrayexpress_experiment):
    return FakeArchive({
        RCSB_URL.format(id="1A3N"): (200, pdb_text),
        UNIPROT_URL.format(id="P69905"): (200, uniprot_entry),
        UNIPROT_SEARCH_URL: (200, {"results": [uniprot_entry]}),
        GEO_ESEARCH_URL: (200, geo_search),
        GEO_ESUMMARY_URL: (200, geo_summary),
        BIOSTUDIES_URL.format(id="E-MTAB-1234"): (200, biostudies_study),
        BIOSTUDIES_SEARCH_URL: (200, {"hits": [{"accno": "E-MTAB-1234", "title": "Heat shock"}]}),
        ARRAYEXPRESS_URL.format(id="E-MTAB-1234"): (200, arrayexpress_experiment),
    })


@pytest.fixture
def client(settings, archive, store):
    """Test client with lifespan run against a mocked HTTP transport."""
    app = create_app(
        settings,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(archive.handler)),
        store=store,
    )
    with TestClient(app) as test_client:
        yield test_client


class TestHealthEndpoint:
    def test_health_returns_200(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200

    def test_health_response_structure(self, client):
        data = client.get("/api/health").json()
        assert data["status"] == "healthy"
        assert data["cache_available"] is True
        assert data["providers"] == ["alphafold", "rcsb", "pdbe", "generic"]
        assert data["cache_entries"] == {"structures": 0, "metadata": 0}

    def test_health_degraded_when_cache_unavailable(self, settings, archive, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("")
        app = create_app(
            settings,
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(archive.handler)),
            store=SQLiteCacheStore(blocker / "cache.sqlite3"),
        )
        with TestClient(app) as client:
            data = client.get("/api/health").json()
        assert data["status"] == "degraded"
        assert data["cache_available"] is False

    def test_request_id_header(self, client):
        response = client.get("/api/health")
        assert response.headers["X-Request-ID"]

    def test_request_id_is_propagated(self, client):
        response = client.get("/api/health", headers={"X-Request-ID": "trace-123"})
        assert response.headers["X-Request-ID"] == "trace-123"


class TestAccessLog:
    def test_structure_requests_log_source_and_cache_status(self, client, caplog):
        caplog.set_level(logging.INFO, logger="bioverse.api.middleware")

        client.get("/api/structure/1A3N", headers={"X-Request-ID": "r1"})
        client.get("/api/structure/1A3N", headers={"X-Request-ID": "r2"})

        lines = [r.getMessage() for r in caplog.records if r.name == "bioverse.api.middleware"]
        assert lines[0].startswith("request_id=r1 GET /api/structure/1A3N status=200")
        assert lines[0].endswith("source=rcsb cache=MISS")
        assert lines[1].endswith("source=rcsb cache=HIT")

    def test_other_requests_log_without_structure_fields(self, client, caplog):
        caplog.set_level(logging.INFO, logger="bioverse.api.middleware")

        client.get("/api/structure/9XYZ")

        record = [r for r in caplog.records if r.name == "bioverse.api.middleware"][-1]
        assert "status=404" in record.getMessage()
        assert "source=" not in record.getMessage()
        assert record.levelno == logging.INFO


class TestStructureEndpoint:
    def test_returns_pdb_text_with_source_headers(self, client, pdb_text):
        response = client.get("/api/structure/1A3N")
        assert response.status_code == 200
        assert response.text == pdb_text
        assert response.headers["content-type"].startswith("text/plain")
        assert response.headers["X-Structure-Source"] == "rcsb"
        assert response.headers["X-Structure-Url"] == RCSB_URL.format(id="1A3N")
        assert response.headers["X-Cache"] == "MISS"

    def test_second_request_is_cache_hit(self, client, archive):
        client.get("/api/structure/1A3N")
        calls = len(archive.requests)
        response = client.get("/api/structure/1a3n")
        assert response.headers["X-Cache"] == "HIT"
        assert len(archive.requests) == calls

    def test_not_found_returns_trail(self, client):
        response = client.get("/api/structure/9XYZ")
        assert response.status_code == 404
        data = response.json()
        assert data["identifier"] == "9XYZ"
        assert "9XYZ" in data["error"]
        assert [f["provider"] for f in data["trail"]] == ["rcsb", "pdbe"]
        assert data["trail"][1]["candidates"][0]["url"] == PDBE_URL.format(id="9xyz")

    def test_record_endpoint_omits_payload(self, client, pdb_text):
        response = client.get("/api/structure/1A3N/record")
        assert response.status_code == 200
        data = response.json()
        assert data["source_provider"] == "rcsb"
        assert data["payload_bytes"] == len(pdb_text.encode())
        assert "raw_payload" not in data
        assert data["metadata"]["sub_identifier"] == "1A3N"

    def test_record_endpoint_not_found(self, client):
        assert client.get("/api/structure/9XYZ/record").status_code == 404

    def test_delete_drops_cached_record(self, client, store):
        client.get("/api/structure/1A3N")
        response = client.delete("/api/structure/1A3N")
        assert response.status_code == 200
        assert response.json() == {"identifier": "1A3N", "deleted": True}
        assert asyncio.run(store.count(CacheNamespace.structures)) == 0

    def test_delete_missing_record(self, client):
        assert client.delete("/api/structure/1A3N").json()["deleted"] is False


class TestUniProtEndpoints:
    def test_protein_summary(self, client):
        response = client.get("/api/uniprot/P69905")
        assert response.status_code == 200
        data = response.json()
        assert data["accession"] == "P69905"
        assert data["organism"] == "Homo sapiens"
        assert data["features"][1]["type"] == "Binding site"

    def test_unknown_accession_returns_404(self, client):
        assert client.get("/api/uniprot/Q00000").status_code == 404

    def test_pdb_search(self, client):
        response = client.get("/api/uniprot/search/pdb", params={"query": "hemoglobin"})
        assert response.status_code == 200
        assert response.json() == {"query": "hemoglobin", "pdb_id": "1A3N"}

    def test_pdb_search_requires_query(self, client):
        assert client.get("/api/uniprot/search/pdb").status_code == 422


class TestExpressionEndpoints:
    def test_geo_expression(self, client):
        response = client.get("/api/geo/expression", params={"accession": "GSE2034"})
        assert response.status_code == 200
        data = response.json()
        assert data["dataset_id"] == "GSE2034"
        assert data["platform"] == "GPL96"
        assert [s["id"] for s in data["samples"]] == ["GSM36777", "GSM36778"]

    def test_geo_expression_requires_accession(self, client):
        assert client.get("/api/geo/expression").status_code == 422

    def test_geo_unknown_accession_returns_404(self, client, archive):
        archive.routes[GEO_ESEARCH_URL] = (200, {"esearchresult": {"idlist": []}})
        assert client.get("/api/geo/expression", params={"accession": "GSE0"}).status_code == 404

    def test_arrayexpress_search_envelope(self, client):
        response = client.get("/api/arrayexpress/search", params={"query": "heat shock"})
        assert response.status_code == 200
        hits = response.json()["experiments"]["experiment"]
        assert [h["accession"] for h in hits] == ["E-MTAB-1234"]
        assert hits[0]["organism"] == "Unknown"

    def test_arrayexpress_experiment(self, client):
        response = client.get("/api/arrayexpress/experiment/E-MTAB-1234")
        assert response.status_code == 200
        data = response.json()
        assert data["organism"] == "Saccharomyces cerevisiae"
        assert data["samples"][0] == {"id": "hs_0min.CEL", "name": "control", "condition": "25C"}

    def test_arrayexpress_experiment_not_found(self, client):
        assert client.get("/api/arrayexpress/experiment/E-MTAB-0").status_code == 404

    def test_arrayexpress_data(self, client):
        response = client.get("/api/arrayexpress/data/E-MTAB-1234")
        assert response.status_code == 200
        data = response.json()
        assert data["headers"][0] == "sample_id"
        assert data["data"][0]["expression_value"] == "7.5"

    def test_arrayexpress_upstream_failure_returns_502(self, client, archive):
        archive.routes[ARRAYEXPRESS_URL.format(id="E-MTAB-5")] = (503, "down")
        assert client.get("/api/arrayexpress/data/E-MTAB-5").status_code == 502


class TestCacheEndpoint:
    def test_sweep_reports_counts(self, client, store, clock):
        client.get("/api/structure/1A3N")
        asyncio.run(store.put(CacheNamespace.metadata, "protein:OLD", {}, ttl=5))
        clock.advance(10)

        response = client.post("/api/cache/sweep")

        assert response.status_code == 200
        assert response.json() == {"removed": 1, "remaining": 1}


class TestPeriodicSweep:
    def test_runs_until_cancelled(self):
        class _Service:
            calls = 0

            async def sweep(self):
                self.calls += 1
                if self.calls == 2:
                    raise CacheUnavailableError("locked")
                return 1

        service = _Service()

        async def run():
            task = asyncio.create_task(periodic_sweep(service, 0.01))
            await asyncio.sleep(0.1)
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

        asyncio.run(run())
        assert service.calls >= 3
