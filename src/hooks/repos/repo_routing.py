import re
from dataclasses import dataclass

REPO_COLLECTION = "repos"            # scheduler enabled (durable)
TEMP_REPO_COLLECTION = "temp_repos"  # scheduler disabled (provisional)
COMMIT_COLLECTION = "commits"

# MongoDB database 이름에 쓸 수 없는 문자
_INVALID_DB_CHARS = re.compile(r'[/\\. "$*<>:|?]')
_MAX_DB_NAME_LENGTH = 63


@dataclass(frozen=True)
class RepoScope:
    """Store 호출마다 명시적으로 넘기는 (org, collection 선택) 범위"""

    org: str
    scheduler_enabled: bool = True


def repo_collection_name(scheduler_enabled: bool) -> str:
    return REPO_COLLECTION if scheduler_enabled else TEMP_REPO_COLLECTION


def org_database_name(org: str, prefix: str) -> str:
    """
    org별 database 이름: "org_" + 정규화된 org 이름

    Example:
        org_database_name("Acme.Inc", "org_") -> "org_acme_inc"
    """
    slug = _INVALID_DB_CHARS.sub("_", org.strip().lower())
    return f"{prefix}{slug}"[:_MAX_DB_NAME_LENGTH]
