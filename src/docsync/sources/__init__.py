"""Content producers — GitHub issues and local directories."""

from docsync.sources.github_issues import GitHubIssuesClient, issue_to_markdown
from docsync.sources.local_files import ScanResult, file_url, scan_code_directory, scan_directory

__all__ = [
    "GitHubIssuesClient",
    "ScanResult",
    "file_url",
    "issue_to_markdown",
    "scan_code_directory",
    "scan_directory",
]
