"""
Error types raised by the descheduler
"""


class DeschedulerError(Exception):
    """Base class for descheduler errors"""


class ConfigConflict(DeschedulerError):
    """Mutually exclusive strategy parameters are both set"""


class ConfigError(DeschedulerError):
    """Policy file is structurally invalid"""


class FilterBuildError(DeschedulerError):
    """Pod candidate filter could not be built"""


class ListError(DeschedulerError):
    """Listing pods bound to a node failed"""

    def __init__(self, node_name: str, cause: Exception):
        super().__init__(f"failed to list pods on node {node_name}: {cause}")
        self.node_name = node_name
        self.cause = cause


class SelectorCompileError(DeschedulerError):
    """Label selector could not be converted into a matcher"""
