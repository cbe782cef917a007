"""Base service class with dependency injection pattern."""

import logging

from shared_services.store import RemoteStore


class BaseService:
    """Base class for all service layer classes that talk to the remote store."""

    def __init__(self, store: RemoteStore | None = None, logger_name: str | None = None):
        self.store = store
        self.logger = logging.getLogger(logger_name or self.__class__.__name__)
