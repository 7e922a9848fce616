"""
Watcher Storage

Where watcher definitions are read from and where watcher searches run.
"""

from vigil.storage.base import parse_hits
from vigil.storage.elasticsearch import ElasticsearchClient, ElasticsearchWatcherStore
from vigil.storage.json_file import JsonWatcherStore

__all__ = [
    "parse_hits",
    "ElasticsearchClient",
    "ElasticsearchWatcherStore",
    "JsonWatcherStore",
]
