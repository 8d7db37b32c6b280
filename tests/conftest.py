"""Shared pytest fixtures: on-disk repository trees for scanner tests."""

from __future__ import annotations

from pathlib import Path

import pytest

CSHARP_PROJECT_TYPE = "FAE04EC0-301F-11D3-BF4B-00C04F79EFBC"
SOLUTION_FOLDER_TYPE = "2150E333-8FDC-42A3-9474-1A3956D46DE8"
MSBUILD_NS = "http://schemas.microsoft.com/developer/msbuild/2003"


class RepoBuilder:
    """Writes solution/project fixtures under a root directory."""

    def __init__(self, root: Path) -> None:
        self.root = root

    def file(self, rel: str, content: str) -> Path:
        path = self.root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    def sdk_project(
        self,
        rel: str,
        *,
        target_framework: str | None = "net8.0",
        output_type: str | None = None,
        assembly_name: str | None = None,
        project_refs: tuple[str, ...] = (),
        packages: tuple[tuple[str, str], ...] = (),
        references: tuple[tuple[str, str | None], ...] = (),
        project_guid: str | None = None,
    ) -> Path:
        props = []
        if target_framework:
            props.append(f"    <TargetFramework>{target_framework}</TargetFramework>")
        if output_type:
            props.append(f"    <OutputType>{output_type}</OutputType>")
        if assembly_name:
            props.append(f"    <AssemblyName>{assembly_name}</AssemblyName>")
        if project_guid:
            props.append(f"    <ProjectGuid>{{{project_guid}}}</ProjectGuid>")
        items = [f'    <ProjectReference Include="{r}" />' for r in project_refs]
        items += [f'    <PackageReference Include="{n}" Version="{v}" />' for n, v in packages]
        items += [_reference_item(name, hint) for name, hint in references]
        body = (
            '<Project Sdk="Microsoft.NET.Sdk">\n'
            "  <PropertyGroup>\n" + "\n".join(props) + "\n  </PropertyGroup>\n"
            "  <ItemGroup>\n" + "\n".join(items) + "\n  </ItemGroup>\n"
            "</Project>\n"
        )
        return self.file(rel, body)

    def legacy_project(
        self,
        rel: str,
        *,
        framework_version: str | None = "v4.7.2",
        output_type: str | None = "Library",
        project_guid: str | None = None,
        project_refs: tuple[str, ...] = (),
        references: tuple[tuple[str, str | None], ...] = (),
    ) -> Path:
        props = []
        if project_guid:
            props.append(f"    <ProjectGuid>{{{project_guid}}}</ProjectGuid>")
        if output_type:
            props.append(f"    <OutputType>{output_type}</OutputType>")
        if framework_version:
            props.append(f"    <TargetFrameworkVersion>{framework_version}</TargetFrameworkVersion>")
        items = [f'    <ProjectReference Include="{r}" />' for r in project_refs]
        items += [_reference_item(name, hint) for name, hint in references]
        body = (
            '<?xml version="1.0" encoding="utf-8"?>\n'
            f'<Project ToolsVersion="15.0" xmlns="{MSBUILD_NS}">\n'
            "  <PropertyGroup>\n" + "\n".join(props) + "\n  </PropertyGroup>\n"
            "  <ItemGroup>\n" + "\n".join(items) + "\n  </ItemGroup>\n"
            "</Project>\n"
        )
        return self.file(rel, body)

    def solution(
        self,
        rel: str,
        entries: list[tuple[str, str]],
        *,
        solution_guid: str | None = None,
    ) -> Path:
        """*entries* are (relative project path with backslashes, project GUID)."""
        lines = [
            "Microsoft Visual Studio Solution File, Format Version 12.00",
            "# Visual Studio Version 17",
        ]
        for path, guid in entries:
            name = path.replace("\\", "/").rsplit("/", 1)[-1].rsplit(".", 1)[0]
            lines.append(f'Project("{{{CSHARP_PROJECT_TYPE}}}") = "{name}", "{path}", "{{{guid}}}"')
            lines.append("EndProject")
        lines.append("Global")
        if solution_guid:
            lines.append("\tGlobalSection(ExtensibilityGlobals) = postSolution")
            lines.append(f"\t\tSolutionGuid = {{{solution_guid}}}")
            lines.append("\tEndGlobalSection")
        lines.append("EndGlobal")
        return self.file(rel, "\r\n".join(lines) + "\r\n")


def _reference_item(name: str, hint: str | None) -> str:
    if hint is None:
        return f'    <Reference Include="{name}" />'
    return f'    <Reference Include="{name}">\n      <HintPath>{hint}</HintPath>\n    </Reference>'


@pytest.fixture
def repo(tmp_path) -> RepoBuilder:
    root = tmp_path / "repo"
    root.mkdir()
    return RepoBuilder(root)
