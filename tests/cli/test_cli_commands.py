"""End-to-end CLI runs through ``main(argv)``."""
from __future__ import annotations

import json
import sys

import pytest

from hieraedit.cli._dispatcher import build_parser, discover_commands, main

from helpers.io_utils import write_config
from helpers.pn import assign, concat, define, klass, param, qr, seg, var

CERTNAME = "web1.example.com"

PN_COMPILER = """
import json, sys

for artifact, source in json.load(sys.stdin).items():
    name = source.split()[1]
    with open(artifact, "w") as f:
        json.dump({"^": ["class", {"#": ["name", name, "params", {"#": []}, "body", []]}]}, f)
"""


@pytest.fixture
def workspace(builder):
    builder.add_class(
        "ntp",
        klass(
            "ntp",
            params={"servers": param(qr("Array"), ["pool.ntp.org"]), "enable": param(qr("Boolean"))},
            body=[assign("motd", concat("ntp on ", seg(var("hostname"))))],
        ),
        docstring={"text": "Time sync"},
    )
    builder.add_defined_type("web::vhost", define("web::vhost", params={"port": param(value=80)}))
    builder.data(f"nodes/{CERTNAME}.yaml", {"ntp::enable": True, "resources": {"web::vhost": {"site": {"port": 81}}}})
    builder.data("common.yaml", {"classes": ["ntp"]})
    return builder.build()


def run(workspace, *argv):
    return main([*argv[:2], "-w", str(workspace.root), "--cache-dir", str(workspace.cache_dir), *argv[2:]])


def test_commands_are_discovered():
    assert {"compile", "classes"} <= set(discover_commands("env"))
    assert {"dump", "dump_class", "dump_resource", "lookup", "assign_class", "remove_class", "set_property"} <= set(
        discover_commands("node")
    )
    args = build_parser().parse_args(["node", "dump-class", CERTNAME, "ntp"])
    assert args.class_name == "ntp"
    assert args.environment == "production"


def test_no_arguments_prints_help(capsys):
    assert main([]) == 0
    assert "hieraedit" in capsys.readouterr().out


def test_env_classes(workspace, capsys):
    assert run(workspace, "env", "classes", "--json") == 0
    data = json.loads(capsys.readouterr().out)
    assert list(data["classes"]) == ["ntp"]
    assert list(data["types"]) == ["web::vhost"]

    assert run(workspace, "env", "classes", "sync") == 0
    assert capsys.readouterr().out.strip() == "ntp  (ntp/manifests/init.pp)"


def test_lookup(workspace, capsys):
    assert run(workspace, "node", "lookup", CERTNAME, "ntp::enable", "--json") == 0
    assert json.loads(capsys.readouterr().out) == {"key": "ntp::enable", "found": True, "value": True, "level": 0}

    assert run(workspace, "node", "lookup", CERTNAME, "classes") == 0
    assert "(level 1: common.yaml)" in capsys.readouterr().out

    assert run(workspace, "node", "lookup", CERTNAME, "missing") == 1
    assert "is not defined" in capsys.readouterr().out


def test_dump_class(workspace, capsys):
    assert run(workspace, "node", "dump-class", CERTNAME, "ntp", "--json") == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["values"] == {"servers": ["pool.ntp.org"], "enable": True, "motd": "ntp on web1"}
    assert payload["modified"] == {"enable": 0}

    assert run(workspace, "node", "dump-class", CERTNAME, "ntp") == 0
    out = capsys.readouterr().out
    assert "  enable: true  [level 0]" in out
    assert "  motd: ntp on web1" in out


def test_dump_resource(workspace, capsys):
    assert run(workspace, "node", "dump-resource", CERTNAME, "web::vhost", "site", "--json") == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["title"] == "site"
    assert payload["values"]["port"] == 81

    assert run(workspace, "node", "dump-resource", CERTNAME, "web::vhost", "other", "--json") == 1
    error = json.loads(capsys.readouterr().err)["error"]
    assert error["code"] == "CompilationError"
    assert error["context"] == {"type": "web::vhost", "title": "other"}


def test_dump_node(workspace, capsys):
    assert run(workspace, "node", "dump", CERTNAME) == 0
    out = capsys.readouterr().out
    assert "  ntp  [from classes]" in out
    assert "  web::vhost['site']  [level 0]" in out


def test_set_and_remove_property(workspace, capsys):
    assert run(workspace, "node", "set-property", CERTNAME, "servers", "[a, b]", "--class", "ntp", "--level", "1") == 0
    assert "Set ntp::servers in" in capsys.readouterr().out
    assert run(workspace, "node", "lookup", CERTNAME, "ntp::servers", "--json") == 0
    assert json.loads(capsys.readouterr().out)["value"] == ["a", "b"]

    assert run(workspace, "node", "set-property", CERTNAME, "motd", "--remove", "-l", "0") == 0
    assert "motd is not set on level 0" in capsys.readouterr().out
    assert run(workspace, "node", "set-property", CERTNAME, "servers", "--class", "ntp", "--remove", "-l", "1") == 0
    assert "Removed ntp::servers" in capsys.readouterr().out


def test_set_property_requires_a_value(workspace, capsys):
    assert run(workspace, "node", "set-property", CERTNAME, "motd", "-l", "0") == 1
    assert "A value is required" in capsys.readouterr().err


def test_assign_and_remove_class(workspace, capsys):
    assert run(workspace, "node", "assign-class", CERTNAME, "ntp", "--level", "0", "--json") == 0
    assert json.loads(capsys.readouterr().out)["changed"] is True
    assert run(workspace, "node", "assign-class", CERTNAME, "ntp", "--level", "0") == 0
    assert "already assigned" in capsys.readouterr().out

    assert run(workspace, "node", "remove-class", CERTNAME, "ntp", "--level", "0") == 0
    assert "Removed ntp" in capsys.readouterr().out

    assert run(workspace, "node", "assign-class", CERTNAME, "nope", "--level", "0", "--json") == 1
    assert json.loads(capsys.readouterr().err)["error"]["message"] == "No such class info: nope"


def test_invalid_level(workspace, capsys):
    assert run(workspace, "node", "set-property", CERTNAME, "x", "1", "--level", "7") == 1
    assert capsys.readouterr().err.strip() == "Error: No such hierarchy level: 7"


def test_unknown_environment(workspace, capsys):
    assert run(workspace, "node", "lookup", CERTNAME, "x", "--env", "staging", "--json") == 1
    assert json.loads(capsys.readouterr().err)["error"]["code"] == "NoSuchEnvironmentError"


def test_invalid_workspace(tmp_path, capsys):
    assert main(["env", "classes", "-w", str(tmp_path)]) == 1
    assert "has no 'environments' directory" in capsys.readouterr().err


def test_workspace_from_environment_variable(workspace, monkeypatch, capsys):
    monkeypatch.setenv("HIERAEDIT_WORKSPACE", str(workspace.root))
    assert main(["node", "lookup", CERTNAME, "ntp::enable", "--cache-dir", str(workspace.cache_dir)]) == 0
    assert "ntp::enable = True" in capsys.readouterr().out


def test_env_compile(builder, tmp_path, capsys):
    script = tmp_path / "pn_compiler.py"
    script.write_text(PN_COMPILER, encoding="utf-8")
    write_config(builder.root, {"compile": {"command": [sys.executable, str(script)], "workers": 1}})
    builder.add_class("app", None, source="class app {}\n")
    builder.build()

    assert run(builder, "env", "compile") == 0
    captured = capsys.readouterr()
    assert "Compiled 1 definitions in 1 batches" in captured.out
    assert "Compiled 1/1 batches" in captured.err

    assert run(builder, "env", "compile", "--json") == 0
    assert json.loads(capsys.readouterr().out) == {
        "status": "success",
        "environment": "production",
        "jobs": 0,
        "batches": 0,
        "failed_batches": [],
    }


def test_env_compile_reports_partial_failure(builder, capsys):
    write_config(builder.root, {"compile": {"command": [sys.executable, "-c", "import sys; sys.exit(3)"]}})
    builder.add_class("app", None)
    builder.build()

    assert run(builder, "env", "compile", "--json", "--quiet") == 1
    data = json.loads(capsys.readouterr().out)
    assert data["status"] == "partial"
    assert data["failed_batches"][0]["definitions"] == ["app"]
