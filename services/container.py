"""
services/container.py
---------------------
Wires the database layer, repositories and services together.

One Services instance is built at startup and shared with the handlers
through ``application.bot_data["services"]``.
"""

from dataclasses import dataclass

import config
from db.connection import ConnectionManager
from db.executor import RetryExecutor
from db.init_db import SchemaInitializer
from repositories.access_repo import AccessRepository
from repositories.card_repo import CardRepository
from repositories.card_request_repo import CardRequestRepository
from repositories.link_repo import LinkRepository
from repositories.tag_repo import TagRepository
from repositories.user_repo import UserRepository
from security.sessions import SessionStore
from services.access_service import AccessService
from services.request_service import RequestService


@dataclass
class Services:
    manager: ConnectionManager
    executor: RetryExecutor
    schema: SchemaInitializer
    users: UserRepository
    cards: CardRepository
    links: LinkRepository
    tags: TagRepository
    access: AccessService
    requests: RequestService
    sessions: SessionStore


def build_services(manager: ConnectionManager) -> Services:
    """Construct every repository and service on top of one connection manager."""
    executor = RetryExecutor(manager)
    schema = SchemaInitializer.from_config(executor)
    manager.set_initializer(schema.run)
    return Services(
        manager=manager,
        executor=executor,
        schema=schema,
        users=UserRepository(executor),
        cards=CardRepository(executor),
        links=LinkRepository(executor),
        tags=TagRepository(executor),
        access=AccessService(AccessRepository(executor)),
        requests=RequestService(executor, CardRequestRepository(executor)),
        sessions=SessionStore(config.SESSION_TTL_SECONDS),
    )
