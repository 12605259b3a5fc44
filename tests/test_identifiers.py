"""Tests for StructureIdentifier parsing."""

import pytest

from bioverse.structures.models import IdKind, StructureIdentifier


class TestStructureIdentifierParse:
    def test_plain_uniprot_accession(self):
        ident = StructureIdentifier.parse("P69905")
        assert ident.uniprot_accession == "P69905"
        assert ident.pdb_id is None
        assert ident.sub_identifiers == {IdKind.uniprot: "P69905"}

    def test_ten_character_accession(self):
        ident = StructureIdentifier.parse("A0A023GPI8")
        assert ident.uniprot_accession == "A0A023GPI8"

    def test_alphafold_model_id_yields_accession(self):
        ident = StructureIdentifier.parse("AF-Q9Y6K9-F1-model_v4")
        assert ident.uniprot_accession == "Q9Y6K9"
        assert ident.pdb_id is None

    def test_alphafold_fragment_is_kept(self):
        ident = StructureIdentifier.parse("af-q8wz42-f5")
        assert ident.uniprot_accession == "Q8WZ42"
        assert ident.alphafold_model == "AF-Q8WZ42-F5"
        assert ident.sub_identifiers == {IdKind.alphafold_model: "AF-Q8WZ42-F5"}

    def test_alphafold_model_version_is_kept(self):
        ident = StructureIdentifier.parse("AF-Q8WZ42-F5-model_v3")
        assert ident.alphafold_model == "AF-Q8WZ42-F5-model_v3"
        assert ident.sub_identifiers == {IdKind.alphafold_file: "AF-Q8WZ42-F5-model_v3"}

    def test_pdb_id(self):
        ident = StructureIdentifier.parse("1a3n")
        assert ident.pdb_id == "1A3N"
        assert ident.uniprot_accession is None
        assert ident.sub_identifiers == {IdKind.pdb: "1A3N"}

    def test_mixed_identifier_yields_both(self):
        ident = StructureIdentifier.parse("P69905 PDB:1A3N")
        assert ident.sub_identifiers == {IdKind.uniprot: "P69905", IdKind.pdb: "1A3N"}

    def test_first_match_of_each_kind_wins(self):
        ident = StructureIdentifier.parse("P69905, P68871, 1A3N, 2HHB")
        assert ident.uniprot_accession == "P69905"
        assert ident.pdb_id == "1A3N"

    def test_free_text_yields_nothing(self):
        ident = StructureIdentifier.parse("X")
        assert ident.sub_identifiers == {}
        assert ident.raw == "X"

    def test_raw_is_stripped_but_case_preserved(self):
        ident = StructureIdentifier.parse("  hemoglobin  ")
        assert ident.raw == "hemoglobin"
        assert ident.cache_key == "raw:hemoglobin"
        assert str(ident) == "hemoglobin"

    @pytest.mark.parametrize("raw", ["", "   ", None])
    def test_empty_identifier_rejected(self, raw):
        with pytest.raises(ValueError):
            StructureIdentifier.parse(raw)

    def test_identifier_is_immutable(self):
        ident = StructureIdentifier.parse("P69905")
        with pytest.raises(Exception):
            ident.raw = "other"


class TestCacheKey:
    def test_key_comes_from_sub_identifiers(self):
        assert StructureIdentifier.parse("1a3n").cache_key == "pdb:1A3N"
        assert StructureIdentifier.parse("p69905 pdb:1a3n").cache_key == "uniprot:P69905|pdb:1A3N"

    def test_pinned_fragments_get_distinct_keys(self):
        f1 = StructureIdentifier.parse("AF-Q8WZ42-F1").cache_key
        f5 = StructureIdentifier.parse("AF-Q8WZ42-F5").cache_key
        assert f1 != f5
        assert f5 == "alphafold_model:AF-Q8WZ42-F5"

    def test_free_form_keys_keep_case(self):
        assert StructureIdentifier.parse(" my-model ").cache_key == "raw:my-model"
        assert StructureIdentifier.parse("MY-MODEL").cache_key == "raw:MY-MODEL"
