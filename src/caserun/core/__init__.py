"""Core test registration and execution functionality."""

from caserun.core.executor import AsyncStrategy, SyncStrategy
from caserun.core.path import TestPath
from caserun.core.runner import TestRunner
from caserun.core.suite import Registry, Suite

__all__ = ["TestPath", "Suite", "Registry", "TestRunner", "SyncStrategy", "AsyncStrategy"]
