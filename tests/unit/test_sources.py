"""
Tests for source root selection and file discovery.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from refgraph.config import Config
from refgraph.errors import ProjectSetupError
from refgraph.project.maven import BuildDescriptor
from refgraph.project.sources import ProjectSources


def touch(path: Path, content: str = "class X {}") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


class TestDiscover:
    """Tests for ProjectSources.discover."""

    def test_sorted_absolute_java_files(self, tmp_path: Path):
        """Test that Java files are listed sorted and absolute."""
        root = tmp_path / "src"
        touch(root / "b" / "B.java")
        touch(root / "a" / "A.java")
        touch(root / "a" / "notes.txt")
        sources = ProjectSources.discover([root])
        assert sources.source_roots == [root.resolve()]
        assert [p.relative_to(root.resolve()).as_posix() for p in sources.files] == [
            "a/A.java",
            "b/B.java",
        ]
        assert all(p.is_absolute() for p in sources.files)

    def test_exclude_dirs_relative_to_root(self, tmp_path: Path):
        """Test that excluded directories are relative to the root."""
        # the root itself lives under a directory named "build"
        root = tmp_path / "build" / "src"
        touch(root / "keep" / "A.java")
        touch(root / "out" / "Generated.java")
        sources = ProjectSources.discover([root], exclude_dirs=["out", "build"])
        assert [p.name for p in sources.files] == ["A.java"]

    def test_overlapping_roots_deduplicated(self, tmp_path: Path):
        """Test that overlapping roots are deduplicated."""
        root = tmp_path / "src"
        touch(root / "p" / "A.java")
        sources = ProjectSources.discover([root, root / "p"])
        assert len(sources.files) == 1

    def test_missing_root_skipped(self, tmp_path: Path):
        """Test that a missing root is skipped."""
        sources = ProjectSources.discover([tmp_path / "absent"])
        assert sources.files == []


class TestFromConfig:
    """Tests for ProjectSources.from_config."""

    def test_descriptor_source_directory(self, tmp_path: Path):
        """Test that the descriptor's source directory is used."""
        touch(tmp_path / "src" / "java" / "A.java")
        descriptor = BuildDescriptor(path=tmp_path / "pom.xml", source_directory="src/java")
        sources = ProjectSources.from_config(Config(project_root=tmp_path), descriptor)
        assert [p.name for p in sources.files] == ["A.java"]

    def test_default_source_directory(self, tmp_path: Path):
        """Test that the default source directory is used."""
        touch(tmp_path / "src" / "main" / "java" / "A.java")
        sources = ProjectSources.from_config(Config(project_root=tmp_path))
        assert sources.source_roots == [(tmp_path / "src" / "main" / "java").resolve()]

    def test_configured_override_beats_descriptor(self, tmp_path: Path):
        """Test that a configured override beats the descriptor."""
        touch(tmp_path / "alt" / "A.java")
        touch(tmp_path / "src" / "main" / "java" / "B.java")
        config = Config(project_root=tmp_path, source={"source_directory": "alt"})
        descriptor = BuildDescriptor(path=tmp_path / "pom.xml")
        sources = ProjectSources.from_config(config, descriptor)
        assert [p.name for p in sources.files] == ["A.java"]

    def test_delombok_preferred(self, tmp_path: Path):
        """Test that delomboked sources are preferred."""
        touch(tmp_path / "src" / "main" / "java" / "A.java")
        touch(tmp_path / "target" / "delombok" / "A.java")
        sources = ProjectSources.from_config(Config(project_root=tmp_path))
        assert "delombok" in sources.files[0].parts

        config = Config(project_root=tmp_path, source={"prefer_delombok": False})
        sources = ProjectSources.from_config(config)
        assert "delombok" not in sources.files[0].parts

    def test_missing_source_directory(self, tmp_path: Path):
        """Test that a missing source directory is an error."""
        with pytest.raises(ProjectSetupError):
            ProjectSources.from_config(Config(project_root=tmp_path))

    def test_missing_project_root(self, tmp_path: Path):
        """Test that a missing project root is an error."""
        with pytest.raises(ProjectSetupError):
            ProjectSources.from_config(Config(project_root=tmp_path / "absent"))
