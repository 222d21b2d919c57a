"""Database schema and data helpers for the commerce domain.

``setup_db``/``drop_db`` create and drop RDBMS tables when the active
configuration points at SQLite or PostgreSQL; they are no-ops for the
in-memory provider. ``reset_data`` wipes every provider, cache and the event store,
which is what the test suite does between tests.
"""

from protean.domain import Domain
from sqlalchemy import create_engine

_RDBMS_PROVIDERS = ("sqlite", "postgresql")


def _register_models(domain: Domain, provider_name: str) -> None:
    # Accessing ``_dao`` forces Protean to build and register the SQLAlchemy
    # model for each element backed by this provider.
    registries = (
        domain.registry.aggregates,
        domain.registry.entities,
        domain.registry.projections,
    )
    for registry in registries:
        for _, record in registry.items():
            if record.cls.meta_.provider == provider_name:
                domain.repository_for(record.cls)._dao  # noqa: B018


def setup_db(domain: Domain) -> None:
    """Create tables for every RDBMS-backed provider."""
    with domain.domain_context():
        for _, provider in domain.providers.items():
            if provider.conn_info["provider"] not in _RDBMS_PROVIDERS:
                continue

            _register_models(domain, provider.name)
            engine = create_engine(provider.conn_info["database_uri"])
            provider._metadata.create_all(engine)


def drop_db(domain: Domain) -> None:
    """Drop tables for every RDBMS-backed provider."""
    with domain.domain_context():
        for _, provider in domain.providers.items():
            if provider.conn_info["provider"] not in _RDBMS_PROVIDERS:
                continue

            engine = create_engine(provider.conn_info["database_uri"])
            provider._metadata.drop_all(engine)


def reset_data(domain: Domain) -> None:
    """Remove all stored data, including event streams."""
    for _, provider in domain.providers.items():
        provider._data_reset()

    for _, broker in domain.brokers.items():
        broker._data_reset()

    for _, cache in domain.caches.items():
        cache.flush_all()

    domain.event_store.store._data_reset()


PAGE_SIZE = 100


def fetch_all(query, order_field="id", page_size=PAGE_SIZE):
    """Return every record matching ``query``.

    Protean caps a query at the element's default limit, so the result is
    walked one page at a time, ordered by the identifier to keep pages stable.
    """
    records = []
    offset = 0
    while True:
        page = query.order_by(order_field).limit(page_size).offset(offset).all()
        records.extend(page.items)
        if len(page.items) < page_size:
            return records
        offset += page_size
