"""Concrete collaborators for the session engine (git, GitHub CLI)."""
from .git import GitClient, parse_status_porcelain
from .github import GhClient, parse_pr_view

__all__ = [
    "GhClient",
    "GitClient",
    "parse_pr_view",
    "parse_status_porcelain",
]
