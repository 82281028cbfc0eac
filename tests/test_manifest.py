"""Unit tests for manifest.py - manifest loading."""

import json

import pytest

from manifest import ManifestError, ResourceManifest, load_manifests, parse_documents


class TestResourceManifest:
    """Tests for the ResourceManifest model."""

    def test_defaults_to_seq_api_key(self):
        manifest = ResourceManifest(name="ingest-key", spec={"title": "ingest"})
        assert manifest.action_plugin == "seq_api_key"

    @pytest.mark.parametrize("name", ["Ingest", "-key", "key-", "a_b", "x" * 64])
    def test_invalid_names(self, name):
        with pytest.raises(ValueError):
            ResourceManifest(name=name, spec={})


class TestParseDocuments:
    """Tests for parse_documents()."""

    def test_skips_empty_documents(self):
        manifests = parse_documents(
            [None, {"name": "a", "spec": {"title": "a"}}], "test"
        )
        assert [m.name for m in manifests] == ["a"]

    def test_invalid_document(self):
        with pytest.raises(ManifestError, match="document 0"):
            parse_documents([{"spec": {}}], "test")

    def test_duplicate_names(self):
        docs = [{"name": "a", "spec": {}}, {"name": "a", "spec": {}}]
        with pytest.raises(ManifestError, match="duplicate resource name 'a'"):
            parse_documents(docs, "test")


class TestLoadManifests:
    """Tests for load_manifests()."""

    def test_yaml_multi_document(self, tmp_path):
        path = tmp_path / "keys.yaml"
        path.write_text(
            "name: ingest-key\n"
            "spec:\n"
            "  title: ingest\n"
            "  permissions: [Ingest]\n"
            "---\n"
            "name: reader\n"
            "spec:\n"
            "  title: dashboards\n"
        )

        manifests = load_manifests(str(path))

        assert [m.name for m in manifests] == ["ingest-key", "reader"]
        assert manifests[0].spec == {"title": "ingest", "permissions": ["Ingest"]}

    def test_json_list(self, tmp_path):
        path = tmp_path / "keys.json"
        path.write_text(
            json.dumps(
                [
                    {"name": "a", "spec": {"title": "a"}},
                    {"name": "b", "spec": {"title": "b"}},
                ]
            )
        )
        assert [m.name for m in load_manifests(str(path))] == ["a", "b"]

    def test_json_object(self, tmp_path):
        path = tmp_path / "key.json"
        path.write_text(json.dumps({"name": "a", "spec": {"title": "a"}}))
        assert len(load_manifests(str(path))) == 1

    def test_malformed_yaml(self, tmp_path):
        path = tmp_path / "keys.yml"
        path.write_text("name: [unclosed\n")
        with pytest.raises(ManifestError):
            load_manifests(str(path))
