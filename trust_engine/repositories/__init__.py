"""
Postgres-backed stores used by the contribution pipeline.

Each store opens its own connection per call via trust_engine.db, so
post-commit effects never share the contribution insert's transaction.
"""

from .aggregates import PostgresAggregateRecomputer
from .citations import PostgresCitationStore
from .contributions import PostgresContributionStore
from .profiles import PostgresProfileStore
from .signals import PostgresSignalStore
from .summons import PostgresSummonsStore

__all__ = [
    "PostgresAggregateRecomputer",
    "PostgresCitationStore",
    "PostgresContributionStore",
    "PostgresProfileStore",
    "PostgresSignalStore",
    "PostgresSummonsStore",
]
