"""Incremental compile pipeline against a fake compiler script."""
from __future__ import annotations

import json
import os
import sys
import textwrap
import time

import pytest

from hieraedit.core.modules import ArtifactCompiler, ModulesIndex, find_stale, refresh_index
from hieraedit.core.modules.compiler import make_batches

from helpers.io_utils import write_json, write_text

# Reads {"<artifact>": "<source>"} from stdin. A source containing BROKEN makes
# the whole batch fail, SKIP leaves that artifact unwritten, SLOW hangs.
FAKE_COMPILER = textwrap.dedent(
    """
    import json, sys, time

    payload = json.load(sys.stdin)
    if any("BROKEN" in source for source in payload.values()):
        sys.stderr.write("syntax error")
        sys.exit(2)
    if any("SLOW" in source for source in payload.values()):
        time.sleep(30)
    for artifact, source in payload.items():
        if "SKIP" in source:
            continue
        with open(artifact, "w") as f:
            json.dump({"source": source}, f)
    """
)

FAKE_INDEXER = textwrap.dedent(
    """
    import json, sys

    globs, output = json.loads(sys.argv[-2]), sys.argv[-1]
    with open(output, "w") as f:
        json.dump({"puppet_classes": [{"name": "app", "file": "app/manifests/init.pp"}], "globs": globs}, f)
    """
)

PAST = time.time() - 3600


def _script(tmp_path, name, content):
    path = tmp_path / name
    path.write_text(content, encoding="utf-8")
    return [sys.executable, str(path)]


def _modules(tmp_path, sources):
    """Write module sources (mtimes in the past) and return their index."""
    modules = tmp_path / "modules"
    entries = []
    for name, text in sources.items():
        module, _, rest = name.partition("::")
        file = f"{module}/manifests/{rest or 'init'}.pp"
        write_text(modules / file, text)
        entries.append({"name": name, "file": file})
    for dirpath, dirnames, filenames in os.walk(modules):
        for entry in dirnames + filenames:
            os.utime(os.path.join(dirpath, entry), (PAST, PAST))
    os.utime(modules, (PAST, PAST))
    return ModulesIndex.from_data({"puppet_classes": entries}, modules, tmp_path / "cache")


@pytest.fixture
def compiler_cmd(tmp_path):
    return _script(tmp_path, "fake_compiler.py", FAKE_COMPILER)


def test_everything_is_stale_without_artifacts(tmp_path):
    index = _modules(tmp_path, {"a": "class a {}", "b": "class b {}"})
    jobs = find_stale(index)
    assert sorted(j.name for j in jobs) == ["a", "b"]
    assert jobs[0].read_source().startswith("class")


def test_make_batches_splits_evenly():
    assert [len(b) for b in make_batches(list(range(5)), 2)] == [2, 2, 1]
    assert [len(b) for b in make_batches(list(range(3)), 0)] == [1, 1, 1]


def test_run_compiles_every_batch_and_reports_progress(tmp_path, compiler_cmd):
    index = _modules(tmp_path, {"a": "class a {}", "b": "class b {}", "c": "class c {}"})
    progress = []

    report = ArtifactCompiler(compiler_cmd, batch_size=2, workers=2, timeout=30).run(
        index, lambda done, total: progress.append((done, total))
    )

    assert report.succeeded
    assert (report.jobs, report.batches) == (3, 2)
    assert progress == [(1, 2), (2, 2)]
    artifact = json.loads(index.artifact_path(index.find_class("b")).read_text(encoding="utf-8"))
    assert artifact == {"source": "class b {}"}


def test_fresh_artifacts_are_skipped_until_a_source_changes(tmp_path, compiler_cmd):
    index = _modules(tmp_path, {"a": "class a {}", "b": "class b {}"})
    ArtifactCompiler(compiler_cmd, workers=1).run(index)

    assert find_stale(index) == []
    assert ArtifactCompiler(compiler_cmd, workers=1).run(index).jobs == 0

    changed = index.source_path(index.find_class("a"))
    future = time.time() + 120
    os.utime(changed, (future, future))
    assert sorted(j.name for j in find_stale(index)) == ["a", "b"]


def test_failing_batch_does_not_stop_the_others(tmp_path, compiler_cmd):
    index = _modules(tmp_path, {"good": "class good {}", "bad": "BROKEN", "skipped": "SKIP"})

    report = ArtifactCompiler(compiler_cmd, batch_size=1, workers=2).run(index)

    assert not report.succeeded
    assert report.batches == 3
    failures = {r.jobs[0].name: r for r in report.failed}
    assert set(failures) == {"bad", "skipped"}
    assert "exited with 2: syntax error" in failures["bad"].error
    assert failures["skipped"].missing == [index.artifact_path(index.find_class("skipped"))]
    assert index.artifact_path(index.find_class("good")).is_file()
    assert report.to_dict()["failed_batches"][0]["definitions"]


def test_timeout_fails_the_batch(tmp_path, compiler_cmd):
    index = _modules(tmp_path, {"slow": "SLOW"})
    report = ArtifactCompiler(compiler_cmd, workers=1, timeout=0.5).run(index)
    assert "timed out" in report.failed[0].error


def test_missing_command_leaves_definitions_stale(tmp_path):
    index = _modules(tmp_path, {"a": "class a {}"})
    report = ArtifactCompiler([], workers=1).run(index)
    assert report.failed[0].error == "No compile command configured"


def test_non_puppet_functions_are_not_compiled(tmp_path):
    write_text(tmp_path / "modules" / "m" / "functions" / "f.pp", "function m::f() {}")
    index = ModulesIndex.from_data(
        {
            "puppet_functions": [
                {"name": "m::f", "file": "m/functions/f.pp", "type": "puppet"},
                {"name": "m::r", "file": "m/lib/puppet/functions/r.rb", "type": "ruby4x"},
            ]
        },
        tmp_path / "modules",
        tmp_path / "cache",
    )
    assert [j.name for j in find_stale(index)] == ["m::f"]


def test_shared_files_compile_once(tmp_path):
    write_text(tmp_path / "modules" / "m" / "manifests" / "init.pp", "class m {} define m::d {}")
    index = ModulesIndex.from_data(
        {
            "puppet_classes": [{"name": "m", "file": "m/manifests/init.pp"}],
            "defined_types": [{"name": "m::d", "file": "m/manifests/init.pp"}],
        },
        tmp_path / "modules",
        tmp_path / "cache",
    )
    assert len(find_stale(index)) == 1


def test_refresh_index_runs_only_when_sources_are_newer(tmp_path):
    indexer = _script(tmp_path, "fake_indexer.py", FAKE_INDEXER)
    index = _modules(tmp_path, {"app": "class app {}"})
    index_path = tmp_path / "cache" / "modules.json"

    assert refresh_index(indexer, index.modules_root, index_path) is True
    data = json.loads(index_path.read_text(encoding="utf-8"))
    assert data["puppet_classes"][0]["name"] == "app"
    assert "*/manifests/**/*.pp" in data["globs"]

    assert refresh_index(indexer, index.modules_root, index_path) is False


def test_refresh_index_without_command_is_a_noop(tmp_path):
    write_json(tmp_path / "cache" / "modules.json", {})
    assert refresh_index([], tmp_path, tmp_path / "cache" / "modules.json") is False


def test_site_manifests_compile_with_the_modules(tmp_path, compiler_cmd):
    index = _modules(tmp_path, {"a": "class a {}"})
    manifests = tmp_path / "manifests"
    write_text(manifests / "site.pp", "node default {}")
    write_text(manifests / "00-globals.pp", "$datacenter = 'dc1'")
    write_text(manifests / "README.txt", "not a manifest")

    jobs = find_stale(index, manifests_dir=manifests)
    assert [j.name for j in jobs] == ["a", "manifests/00-globals.pp", "manifests/site.pp"]
    assert jobs[-1].artifact == tmp_path / "cache" / "site" / "site.pp.o"

    report = ArtifactCompiler(compiler_cmd, workers=1).run(index, manifests_dir=manifests)
    assert report.succeeded
    assert json.loads(jobs[-1].artifact.read_text(encoding="utf-8")) == {"source": "node default {}"}
    assert find_stale(index, manifests_dir=manifests) == []

    later = time.time() + 60
    os.utime(manifests / "site.pp", (later, later))
    assert len(find_stale(index, manifests_dir=manifests)) == 3


def test_missing_manifests_dir_adds_no_jobs(tmp_path):
    index = _modules(tmp_path, {"a": "class a {}"})
    assert [j.name for j in find_stale(index, manifests_dir=tmp_path / "nope")] == ["a"]
