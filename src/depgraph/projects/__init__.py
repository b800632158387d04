"""Build descriptions of projects: the restore graph and its parser."""

from depgraph.projects.dgspec import DependencyGraphSpecProvider, find_project_file, parse_dgspec
from depgraph.projects.models import FrameworkDependencies, ProjectDescription, RestoreGraph

__all__ = [
    "DependencyGraphSpecProvider",
    "FrameworkDependencies",
    "ProjectDescription",
    "RestoreGraph",
    "find_project_file",
    "parse_dgspec",
]
