"""Tests for deterministic entity identifiers."""

import hashlib
import re

from buildgraph.engines.repository_scanner.identity import (
    identifier_for,
    identifier_for_assembly,
    identifier_for_path,
    normalize_path,
)

_GUID_RE = re.compile(r"^[0-9A-F]{8}-[0-9A-F]{4}-[0-9A-F]{4}-[0-9A-F]{4}-[0-9A-F]{12}$")


class TestIdentifierFor:
    def test_format_is_uppercase_guid(self):
        assert _GUID_RE.match(identifier_for("anything"))

    def test_matches_md5_digest(self):
        digest = hashlib.md5(b"some-key").hexdigest().upper()
        token = identifier_for("some-key")
        assert token.replace("-", "") == digest

    def test_deterministic(self):
        assert identifier_for("a/b/c.csproj") == identifier_for("a/b/c.csproj")

    def test_distinct_keys_differ(self):
        assert identifier_for("a.csproj") != identifier_for("b.csproj")

    def test_known_value(self):
        # md5("") = d41d8cd98f00b204e9800998ecf8427e
        assert identifier_for("") == "D41D8CD9-8F00-B204-E980-0998ECF8427E"


class TestPathIdentity:
    def test_normalize_is_absolute_and_lowercase(self, tmp_path):
        path = tmp_path / "Src" / "App.CSPROJ"
        normalized = normalize_path(path)
        assert normalized == str(path.resolve()).lower()

    def test_relative_and_absolute_agree(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        assert identifier_for_path("App.csproj") == identifier_for_path(tmp_path / "App.csproj")

    def test_case_insensitive(self, tmp_path):
        assert identifier_for_path(tmp_path / "App.csproj") == identifier_for_path(
            tmp_path / "APP.CSPROJ"
        )

    def test_dot_segments_resolved(self, tmp_path):
        direct = tmp_path / "src" / "App.csproj"
        roundabout = tmp_path / "src" / "lib" / ".." / "App.csproj"
        assert identifier_for_path(direct) == identifier_for_path(roundabout)


class TestAssemblyIdentity:
    def test_composite_key(self, tmp_path):
        project = tmp_path / "App.csproj"
        expected = identifier_for(f"{normalize_path(project)}|myapp")
        assert identifier_for_assembly(project, "MyApp") == expected

    def test_name_case_insensitive(self, tmp_path):
        project = tmp_path / "App.csproj"
        assert identifier_for_assembly(project, "MyApp") == identifier_for_assembly(
            project, "MYAPP"
        )

    def test_differs_from_project_identifier(self, tmp_path):
        project = tmp_path / "App.csproj"
        assert identifier_for_assembly(project, "App") != identifier_for_path(project)
