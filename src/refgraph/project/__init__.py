"""Project layout: build descriptor and source discovery."""

from refgraph.project.maven import BuildDescriptor, DependencyCoordinate, read_build_descriptor
from refgraph.project.sources import ProjectSources

__all__ = [
    "BuildDescriptor",
    "DependencyCoordinate",
    "ProjectSources",
    "read_build_descriptor",
]
