from hooks.shared.time_utils import to_utc_datetime


def map_repo_list_item(repo) -> dict:
    """
    GitHub Repository → repository list entry (GitHub API 필드명 그대로: id, name)
    """
    return {
        # --------------------
        # Identity
        # --------------------
        "id": repo.id,
        "name": repo.name,
        "full_name": repo.full_name,
        "owner": repo.owner.login,
        "url": repo.html_url,

        # --------------------
        # Signals (mutable)
        # --------------------
        "size": repo.size,
        "language": repo.language,
        "private": repo.private,
        "archived": repo.archived,
        "default_branch": repo.default_branch,

        # --------------------
        # Activity
        # --------------------
        "created_at": to_utc_datetime(repo.created_at),
        "updated_at": to_utc_datetime(repo.updated_at),
        "pushed_at": to_utc_datetime(repo.pushed_at),
    }
