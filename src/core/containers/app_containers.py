from dependency_injector import containers, providers
from motor.motor_asyncio import AsyncIOMotorClient

from core.config.settings import settings
from hooks.commits.commit_source import CommitHistorySource
from hooks.delivery.delivery_queue import DeliveryQueue
from hooks.onboarding.onboarding_trigger import OrgOnboardingTrigger
from hooks.reconcile.reconciler import RepoReconciler
from hooks.repos.repo_store import RepoStore
from hooks.repos.repo_sync import RepoSynchronizer
from hooks.github.client import GitHubClient


class AppContainer(containers.DeclarativeContainer):

    mongo_client = providers.Singleton(
        AsyncIOMotorClient,
        settings.MONGO_URL,
        serverSelectionTimeoutMS=settings.MONGO_TIMEOUT_MS,
    )

    repo_store = providers.Singleton(
        RepoStore,
        mongo=mongo_client,
        db_prefix=settings.ORG_DB_PREFIX,
    )

    commit_source = providers.Singleton(
        CommitHistorySource,
        mongo=mongo_client,
        db_prefix=settings.ORG_DB_PREFIX,
    )

    delivery_queue = providers.Singleton(
        DeliveryQueue,
        mongo=mongo_client,
        db_name=settings.MONGO_DB_NAME,
    )

    onboarding_trigger = providers.Singleton(
        OrgOnboardingTrigger,
        mongo=mongo_client,
        db_name=settings.MONGO_DB_NAME,
    )

    reconciler = providers.Singleton(
        RepoReconciler,
        repo_store=repo_store,
        commit_source=commit_source,
        delivery_queue=delivery_queue,
        onboarding=onboarding_trigger,
    )

    github_client = providers.Factory(
        GitHubClient,
        token=settings.GITHUB_TOKEN,
    )

    repo_synchronizer = providers.Factory(
        RepoSynchronizer,
        repo_store=repo_store,
        github_client=github_client,
    )
