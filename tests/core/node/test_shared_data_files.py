"""Nodes of one environment share the data files of common hierarchy levels."""
from __future__ import annotations

import pytest
import yaml

from hieraedit.core.hiera import DataFileRegistry

from helpers.pn import array, klass, param

A = "a.example.com"
B = "b.example.com"

NTP = klass("ntp", params={"servers": param(value=array("default.pool"))})


@pytest.fixture
def env(builder):
    builder.add_class("ntp", NTP)
    builder.data("common.yaml", {"motd": "hi"})
    return builder.build().environment()


def _common(builder):
    return yaml.safe_load((builder.env_dir / "data" / "common.yaml").read_text(encoding="utf-8"))


def test_common_level_is_one_object(env):
    a, b = env.node(A), env.node(B)

    assert a.hierarchy.get(1).file is b.hierarchy.get(1).file
    assert a.hierarchy.get(0).file_path != b.hierarchy.get(0).file_path
    assert a.hierarchy.uses(b.hierarchy.get(1).file_path)
    assert not a.hierarchy.uses(b.hierarchy.get(0).file_path)


def test_writes_from_two_nodes_both_persist(env, builder):
    a, b = env.node(A), env.node(B)

    a.set_class_property("ntp", 1, "servers", ["a.pool"])
    b.set_property(1, "motd", "from b")

    assert _common(builder) == {"motd": "from b", "ntp::servers": ["a.pool"]}
    assert a.get_global("motd") == "from b"
    assert b.lookup("ntp::servers") == (True, ["a.pool"], 1)


def test_write_invalidates_other_nodes_reading_the_file(env):
    a, b = env.node(A), env.node(B)
    assert b.resolve_class("ntp").get_resolved_property("servers").value == ["default.pool"]

    a.set_class_property("ntp", 1, "servers", ["a.pool"])

    assert not b.is_class_resolved("ntp")
    servers = b.resolve_class("ntp").get_resolved_property("servers")
    assert (servers.value, servers.hierarchy) == (["a.pool"], 1)


def test_node_level_write_leaves_other_nodes_alone(env):
    a, b = env.node(A), env.node(B)
    b.resolve_class("ntp")

    a.set_class_property("ntp", 0, "servers", ["only.a"])

    assert b.is_class_resolved("ntp")
    assert b.resolve_class("ntp").get_resolved_property("servers").value == ["default.pool"]
    assert a.resolve_class("ntp").get_resolved_property("servers").value == ["only.a"]


def test_close_drops_shared_files(env):
    env.node(A)
    assert len(env.files) == 1

    env.close()

    assert len(env.files) == 0
    assert env.nodes == {}


def test_registry_loads_once_and_notifies(tmp_path):
    path = tmp_path / "common.yaml"
    path.write_text("a: 1\n", encoding="utf-8")
    registry = DataFileRegistry()
    changes = []
    registry.subscribe(lambda changed, origin: changes.append((changed, origin)))

    assert registry.cached(path) is None
    assert registry.get(tmp_path / "missing.yaml") is None
    first = registry.get(path)
    assert registry.get(path) is first
    assert registry.create(path) is first
    created = registry.create(tmp_path / "new" / "level.yaml")
    assert created.path.is_file()

    registry.changed(path, "writer")
    assert changes == [(path, "writer")]
