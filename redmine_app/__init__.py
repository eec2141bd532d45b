"""redmine_app - Redmine client with workload and flexibility planning."""

from redmine_app.config import ConnectionDescriptor, create_descriptor, equivalent
from redmine_app.tools.errors import ConfigurationError, RedmineError, ResponseError, TransportError
from redmine_app.tools.redmine import RedmineProject, RedmineServer

__all__ = [
    "ConnectionDescriptor",
    "create_descriptor",
    "equivalent",
    "ConfigurationError",
    "RedmineError",
    "ResponseError",
    "TransportError",
    "RedmineProject",
    "RedmineServer",
]
