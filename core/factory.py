"""
Factory — builds an AppContext with the storage strategy the configuration
calls for. The choice is made here, once, and never revisited.
"""

from typing import Optional

from backends.base import RemoteCollaborator
from backends.firebase import FirebaseCollaborator
from config.settings import Settings
from core.context import AppContext
from core.strategies import LocalStrategy, RemoteStrategy, StorageStrategy
from tools.file_handler import Content, load_content
from tools.local_store import LocalStore
from tools.log import get_logger
from tools.notifier import AlertNotifier

log = get_logger(__name__)


def build_collaborator(settings: Settings) -> RemoteCollaborator:
    return FirebaseCollaborator(
        api_key=settings.firebase_api_key,
        project_id=settings.firebase_project_id,
        timeout=settings.request_timeout,
        max_retries=settings.max_retries,
    )


def create_context(
    settings: Settings,
    collaborator: Optional[RemoteCollaborator] = None,
    store: Optional[LocalStore] = None,
    content: Optional[Content] = None,
    alerts: Optional[AlertNotifier] = None,
) -> AppContext:
    """
    Build an application context.

    Args:
        settings: Application settings.
        collaborator: Remote backend to use. Defaults to Firebase when
            FIREBASE_API_KEY is configured.
        store: Local durable store. Defaults to the sqlite file at settings.store_path.
        content: Static content. Defaults to settings.content_path.
        alerts: Alert channel to report blocking notices on.

    Returns:
        A context in remote mode if the collaborator reports itself enabled,
        local mode otherwise. Call start() (or use `async with`) before use.
    """
    store = store or LocalStore(settings.store_path)
    content = content or load_content(settings.content_path)

    if collaborator is None and settings.remote_enabled:
        collaborator = build_collaborator(settings)

    strategy: StorageStrategy
    if collaborator is not None and collaborator.is_enabled():
        strategy = RemoteStrategy(collaborator, poll_interval=settings.poll_interval)
        log.info("Using remote backend %s", type(collaborator).__name__)
    else:
        if collaborator is not None:
            log.warning("Remote backend %s is not configured; using local store", type(collaborator).__name__)
        strategy = LocalStrategy(store, content)
        log.info("Using local store at %s", store.db_path)

    return AppContext(strategy, store, content, alerts=alerts)
