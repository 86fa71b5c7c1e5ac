"""Workflow nodes for graph state machine."""

from jsupdate.workflow.nodes.baseline import Baseline
from jsupdate.workflow.nodes.bisect import Bisect
from jsupdate.workflow.nodes.finalize import Finalize
from jsupdate.workflow.nodes.initialize import Initialize
from jsupdate.workflow.nodes.report import Report

__all__ = [
    "Initialize",
    "Baseline",
    "Bisect",
    "Finalize",
    "Report",
]
