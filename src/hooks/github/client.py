# src/hooks/github/client.py

from typing import Iterable, Optional

from github import Auth, Github
from github.Repository import Repository

from core.logging.logger import get_logger


class GitHubClient:
    """
    Low-level GitHub API wrapper.
    Only responsible for HTTP communication (blocking, call via asyncio.to_thread).
    """

    def __init__(self, token: Optional[str] = None):
        if token:
            self.client = Github(auth=Auth.Token(token), per_page=100)
        else:
            self.client = Github(per_page=100)
        self.logger = get_logger(__name__)

    def list_org_repositories(self, org: str) -> Iterable[Repository]:
        """
        Organization의 전체 repository 목록 (live repository list)
        """
        self.logger.info(f"Listing repositories for organization {org}")
        return self.client.get_organization(org).get_repos(type="all")
