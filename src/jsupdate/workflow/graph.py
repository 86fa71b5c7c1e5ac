"""Graph workflow definition."""

from pydantic_graph import Graph

from jsupdate.core.config import State
from jsupdate.core.log import logger


def create_workflow():
    """Create the update workflow graph.

    Initialize → Baseline → Bisect → Finalize → Report

    Initialize ends early when there is nothing to update, Baseline
    when the untouched project already fails its tests.

    Returns:
        Graph workflow with State as state_type
    """
    logger.debug("Building workflow graph")

    # Imported here so the graph can resolve the nodes' forward
    # references from this namespace
    from jsupdate.workflow.nodes.baseline import Baseline
    from jsupdate.workflow.nodes.bisect import Bisect
    from jsupdate.workflow.nodes.finalize import Finalize
    from jsupdate.workflow.nodes.initialize import Initialize
    from jsupdate.workflow.nodes.report import Report

    return Graph(
        nodes=(
            Initialize,
            Baseline,
            Bisect,
            Finalize,
            Report,
        ),
        state_type=State
    )
