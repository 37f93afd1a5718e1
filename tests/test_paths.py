from pathlib import Path

from defect_bridge.paths import rewrite_path
from defect_bridge.resources import SourceTree, language_for

LEGACY = "/u/covdev/ccm_wa/symbios/RAIDCore-cdTrunk/dev_e10_820_ab12-68.20.99.99"


def test_strip_prefix_becomes_relative():
    assert rewrite_path("foo/bar.c", strip_prefix="foo/") == "./bar.c"


def test_no_rules_returns_input_unchanged():
    assert rewrite_path("foo/bar.c") == "foo/bar.c"
    assert rewrite_path("foo/bar.c", strip_prefix="") == "foo/bar.c"


def test_prefix_not_matching_is_ignored():
    assert rewrite_path("/other/bar.c", strip_prefix="/builds/") == "/other/bar.c"


def test_legacy_substitution_uses_source_path():
    remote = f"{LEGACY}/src/raid.c"

    assert rewrite_path(remote, source_path="/home/dev/raid") == "/home/dev/raid/src/raid.c"
    assert rewrite_path(remote) == remote


def test_strip_prefix_runs_before_legacy_substitution():
    remote = f"/mnt{LEGACY}/src/raid.c"

    result = rewrite_path(remote, strip_prefix="/mnt/", source_path="/checkout")
    assert result == "./checkout/src/raid.c"

    result = rewrite_path(remote, strip_prefix="/mnt", source_path="/checkout")
    assert result == ".//checkout/src/raid.c"


def test_source_path_is_a_literal_replacement():
    assert rewrite_path(f"{LEGACY}/a.c", source_path=r"C:\work\1") == r"C:\work\1/a.c"


def test_resolve_file_inside_source_dirs(tmp_path: Path):
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "main.c").write_text("int main(void) { return 0; }\n", encoding="utf-8")
    (tmp_path / "docs").mkdir()
    (tmp_path / "docs" / "notes.c").write_text("", encoding="utf-8")

    tree = SourceTree(tmp_path, ("src",), default_language="c++")

    resource = tree.resolve_file("./src/main.c")
    assert resource is not None
    assert resource.path == "src/main.c"
    assert resource.language == "c++"
    assert tree.resolve_file(str(tmp_path / "src" / "main.c")) == resource

    assert tree.resolve_file("docs/notes.c") is None
    assert tree.resolve_file("src/missing.c") is None
    assert tree.resolve_file("src") is None


def test_effective_language_falls_back_to_default(tmp_path: Path):
    (tmp_path / "build.mk").write_text("all:\n", encoding="utf-8")
    tree = SourceTree(tmp_path, default_language="c++")

    resource = tree.resolve_file("build.mk")

    assert resource is not None
    assert resource.language is None
    assert tree.effective_language(resource) == "c++"


def test_language_for_extensions():
    assert language_for("a/B.JAVA") == "java"
    assert language_for("x.hpp") == "c++"
    assert language_for("x.cs") == "cs"
    assert language_for("Makefile") is None


def test_c_sources_and_headers_share_one_language():
    assert language_for("src/a.c") == language_for("src/a.h") == language_for("src/a.cpp") == "c++"
