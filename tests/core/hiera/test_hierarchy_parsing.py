"""hiera.yaml parsing (v3 / v5) and per-node compilation."""
from __future__ import annotations

import pytest

from hieraedit.core.exceptions import HierarchyError
from hieraedit.core.hiera import DataFileRegistry, Hierarchy, interpolate
from hieraedit.core.hiera.hierarchy import DEFAULT_PATHS

from helpers.io_utils import write_yaml


NODE_ROOT = {
    "trusted": {"certname": "web1.example.com"},
    "facts": {"os": {"family": "Debian"}},
    "environment": "production",
}


def test_missing_document_gives_default_hierarchy(tmp_path):
    hierarchy = Hierarchy.load(tmp_path / "hiera.yaml")
    assert [e.path for e in hierarchy.entries] == list(DEFAULT_PATHS)
    assert hierarchy.datadir == "data"
    assert hierarchy.base_dir == tmp_path


def test_v3_adds_suffix_and_reads_legacy_keys():
    hierarchy = Hierarchy.from_document(
        {
            ":hierarchy": ["nodes/%{::trusted.certname}", "os/%{facts.os.family}", "common"],
            ":backends": ["yaml"],
            ":yaml": {":datadir": "hieradata"},
        }
    )
    assert hierarchy.version == 3
    assert hierarchy.datadir == "hieradata"
    assert [e.path for e in hierarchy.entries] == [
        "nodes/%{::trusted.certname}.yaml",
        "os/%{facts.os.family}.yaml",
        "common.yaml",
    ]
    assert hierarchy.encryption is None


def test_v3_eyaml_block_sets_datadir_and_keys():
    hierarchy = Hierarchy.from_document(
        {
            "hierarchy": ["common"],
            "eyaml": {
                "datadir": "secure",
                "pkcs7_public_key": "keys/public_key.pkcs7.pem",
                "pkcs7_private_key": "keys/private_key.pkcs7.pem",
            },
        }
    )
    assert hierarchy.datadir == "secure"
    assert hierarchy.encryption.public_key == "keys/public_key.pkcs7.pem"
    assert hierarchy.encryption_for(hierarchy.entries[0]) is hierarchy.encryption


def test_v5_expands_paths_and_applies_defaults():
    hierarchy = Hierarchy.from_document(
        {
            "version": 5,
            "defaults": {"datadir": "data", "data_hash": "yaml_data"},
            "hierarchy": [
                {"name": "Per node", "path": "nodes/%{trusted.certname}.yaml"},
                {"name": "Per OS", "paths": ["os/%{facts.os.family}.yaml", "os/common.yaml"]},
                {"name": "Shared", "path": "common.yaml", "datadir": "shared"},
            ],
        }
    )
    assert hierarchy.version == 5
    assert [(e.name, e.path) for e in hierarchy.entries] == [
        ("Per node", "nodes/%{trusted.certname}.yaml"),
        ("Per OS", "os/%{facts.os.family}.yaml"),
        ("Per OS", "os/common.yaml"),
        ("Shared", "common.yaml"),
    ]
    assert hierarchy.entries[3].datadir == "shared"


def test_v5_eyaml_lookup_key_uses_entry_options():
    hierarchy = Hierarchy.from_document(
        {
            "version": 5,
            "hierarchy": [
                {
                    "name": "Secrets",
                    "lookup_key": "eyaml_lookup_key",
                    "path": "secrets.eyaml",
                    "options": {"pkcs7_public_key": "keys/pub.pem", "pkcs7_private_key": "keys/priv.pem"},
                },
                {"name": "Common", "path": "common.yaml"},
            ],
        }
    )
    secrets, common = hierarchy.entries
    assert secrets.encryption.public_key == "keys/pub.pem"
    assert common.encryption is None


@pytest.mark.parametrize(
    "document",
    [
        ["not", "a", "mapping"],
        {"version": 4},
        {"version": "five"},
        {"version": 5, "hierarchy": [{"name": "no path"}]},
        {"version": 5, "hierarchy": [{"name": "bad", "paths": "x.yaml"}]},
        {"hierarchy": 12},
    ],
)
def test_malformed_documents_are_rejected(document):
    with pytest.raises(HierarchyError):
        Hierarchy.from_document(document)


def test_invalid_yaml_is_rejected(tmp_path):
    path = tmp_path / "hiera.yaml"
    path.write_text("hierarchy: [unclosed\n", encoding="utf-8")
    with pytest.raises(HierarchyError, match="Cannot read hierarchy document"):
        Hierarchy.load(path)


def test_interpolation_with_missing_segments():
    assert interpolate("nodes/%{::trusted.certname}.yaml", NODE_ROOT) == "nodes/web1.example.com.yaml"
    assert interpolate("os/%{facts.os.family}.yaml", NODE_ROOT) == "os/Debian.yaml"
    assert interpolate("role/%{facts.role}.yaml", NODE_ROOT) == "role/.yaml"
    assert interpolate("%{environment}", NODE_ROOT) == "production"


def test_compile_locates_existing_files_only(tmp_path):
    write_yaml(tmp_path / "data" / "nodes" / "web1.example.com.yaml", {"ntp::servers": ["node"]})
    write_yaml(tmp_path / "data" / "common.yaml", {"ntp::servers": ["common"], "ntp::enable": True})
    hierarchy = Hierarchy.from_document(
        {"hierarchy": ["nodes/%{::trusted.certname}", "os/%{facts.os.family}", "common"]},
        source=tmp_path / "hiera.yaml",
    )

    compiled = hierarchy.compile(NODE_ROOT)

    assert len(compiled) == 3
    assert [entry.file is not None for entry in compiled] == [True, False, True]
    assert compiled.get(1).file_path == tmp_path / "data" / "os" / "Debian.yaml"
    assert not compiled.get(1).file_path.exists()


def test_lookup_uses_highest_priority_level(tmp_path):
    write_yaml(tmp_path / "data" / "nodes" / "web1.example.com.yaml", {"ntp::servers": ["node"]})
    write_yaml(tmp_path / "data" / "common.yaml", {"ntp::servers": ["common"], "ntp::enable": True})
    compiled = Hierarchy.from_document(
        {"hierarchy": ["nodes/%{::trusted.certname}", "common"]}, source=tmp_path / "hiera.yaml"
    ).compile(NODE_ROOT)

    assert compiled.lookup("ntp::servers") == (True, ["node"], 0)
    assert compiled.lookup("ntp::enable") == (True, True, 1)
    assert compiled.lookup("ntp::missing") == (False, None, None)


def test_assign_creates_file_on_exact_level(tmp_path):
    compiled = Hierarchy.from_document(
        {"hierarchy": ["nodes/%{::trusted.certname}", "common"]}, source=tmp_path / "hiera.yaml"
    ).compile(NODE_ROOT)

    compiled.assign(0, "app::port", 8080)

    node_file = tmp_path / "data" / "nodes" / "web1.example.com.yaml"
    assert node_file.is_file()
    assert not (tmp_path / "data" / "common.yaml").exists()
    assert compiled.lookup("app::port") == (True, 8080, 0)
    assert "app::port: 8080" in node_file.read_text(encoding="utf-8")


def test_remove_reports_whether_key_existed(tmp_path):
    write_yaml(tmp_path / "data" / "common.yaml", {"a": 1, "b": 2})
    compiled = Hierarchy.from_document({"hierarchy": ["common"]}, source=tmp_path / "hiera.yaml").compile(NODE_ROOT)

    assert compiled.remove(0, "a") is True
    assert compiled.remove(0, "a") is False
    assert "a:" not in (tmp_path / "data" / "common.yaml").read_text(encoding="utf-8")


@pytest.mark.parametrize("level", [-1, 2, "0"])
def test_invalid_level_is_rejected(tmp_path, level):
    compiled = Hierarchy.from_document({"hierarchy": ["a", "b"]}, source=tmp_path / "hiera.yaml").compile(NODE_ROOT)
    with pytest.raises(HierarchyError, match="No such hierarchy level"):
        compiled.assign(level, "key", "value")


def test_dump_describes_levels(tmp_path):
    hierarchy = Hierarchy.from_document({"hierarchy": ["common"]}, source=tmp_path / "hiera.yaml")
    assert hierarchy.dump()["hierarchy"][0]["path"] == "common.yaml"
    level = hierarchy.compile(NODE_ROOT).dump()[0]
    assert level["exists"] is False
    assert level["eyaml"] is False
    assert level["file"] == str(tmp_path / "data" / "common.yaml")


def test_lookup_of_a_vanished_level_file_is_a_hierarchy_error(tmp_path, monkeypatch):
    compiled = Hierarchy.from_document({"hierarchy": ["common"]}, source=tmp_path / "hiera.yaml").compile(NODE_ROOT)
    monkeypatch.setattr(compiled.get(0), "has", lambda key: True)

    with pytest.raises(HierarchyError, match="Data file of level 0 disappeared") as info:
        compiled.lookup("ntp::servers")
    assert info.value.level == 0


def test_compiles_sharing_a_registry_share_level_files(tmp_path):
    hierarchy = Hierarchy.from_document(
        {"hierarchy": ["nodes/%{::trusted.certname}", "common"]}, source=tmp_path / "hiera.yaml"
    )
    files = DataFileRegistry()
    origins = []
    files.subscribe(lambda path, origin: origins.append((path.name, origin)))
    web1 = hierarchy.compile(NODE_ROOT, files=files)
    web2 = hierarchy.compile({**NODE_ROOT, "trusted": {"certname": "web2.example.com"}}, files=files)

    web1.assign(1, "motd", "hello")
    assert web2.lookup("motd") == (True, "hello", 1)
    assert web2.remove(1, "motd") is True
    assert web1.lookup("motd") == (False, None, None)

    assert origins == [("common.yaml", web1), ("common.yaml", web2)]
    assert web2.get(0).file_path.name == "web2.example.com.yaml"
