import asyncio
import logging
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from pocketflow import Flow, Node

from .node_registry import registry
from .nodes.base import ERROR_ACTION
from .resolver import NotExecutable, resolve_execution_order
from .schemas import LogEntry, NodeConfig, NodeResult, RunResult, RunStatus, Workflow

logger = logging.getLogger(__name__)

SYSTEM_ID = "system"
SYSTEM_NAME = "System"

EventCallback = Callable[[str, dict], None]


class RunInProgress(Exception):
    pass


class HaltNode(Node):
    """Target of every node's "error" action; ends the flow."""

    def post(self, shared, prep_res, exec_res):
        logger.info(f"Halting flow after failure in {shared.get('failed_node_id')}")
        return None


def instantiate_node(node_config: NodeConfig, event_callback: Optional[EventCallback] = None):
    node_class = registry.get_node_class(node_config.type)
    pf_node = node_class()
    # Use .config to store static parameters; pocketflow owns .params
    pf_node.config = dict(node_config.parameters)
    pf_node.name = node_config.label or node_config.id
    pf_node.id = node_config.id
    pf_node.declared_type = node_config.type
    pf_node.on_event = event_callback
    return pf_node


def build_flow(order: Sequence[NodeConfig], event_callback: Optional[EventCallback] = None) -> Tuple[Optional[Flow], Optional[str]]:
    """Chain the resolved nodes into a linear pocketflow Flow that stops on the first "error" action."""
    if not order:
        return None, "Nothing to run"

    pf_nodes = [instantiate_node(n, event_callback) for n in order]
    halt = HaltNode()
    for current, nxt in zip(pf_nodes, pf_nodes[1:]):
        current >> nxt
    # The last node has no successor, so a failure there ends the flow on its own
    for pf_node in pf_nodes[:-1]:
        (pf_node - ERROR_ACTION) >> halt

    return Flow(pf_nodes[0]), None


def validation_message(error: NotExecutable) -> str:
    return (
        f"Error: Flow validation failed ({error}). Make sure you have:\n"
        "1. A Start node\n"
        "2. An End node\n"
        "3. All nodes connected in a path from Start to End"
    )


def execute_node(node_config: NodeConfig, service_urls: Optional[Dict[str, str]] = None) -> NodeResult:
    """Run a single node's executor outside of a flow, e.g. to test its parameters."""
    pf_node = instantiate_node(node_config)
    # Structured Output only calls its services when run standalone
    shared = {"service_urls": dict(service_urls or {}), "standalone": True}
    prep_res = pf_node.prep(shared)
    return pf_node._exec(prep_res)


class RunController:
    """
    Runs one workflow at a time and owns that run's state and log.

    States move Idle -> Resolving -> Running -> Completed/Failed. A graph that
    cannot be resolved goes straight from Resolving to Failed with a single
    diagnostic entry. A run cancelled in flight settles as Failed. A new run may
    start once the previous one has settled.
    """

    def __init__(self, service_urls: Optional[Dict[str, str]] = None, event_callback: Optional[EventCallback] = None):
        self.service_urls = dict(service_urls or {})
        self.event_callback = event_callback
        self._state = RunStatus.IDLE
        self._log: List[LogEntry] = []
        self._shared: dict = {}
        self.failed_node_id: Optional[str] = None

    @property
    def state(self) -> RunStatus:
        return self._state

    @property
    def busy(self) -> bool:
        return self._state in (RunStatus.RESOLVING, RunStatus.RUNNING)

    @property
    def log(self) -> List[LogEntry]:
        return list(self._log)

    @property
    def current_node_id(self) -> Optional[str]:
        if self._state != RunStatus.RUNNING:
            return None
        return self._shared.get("current_node_id")

    def clear_log(self):
        if self.busy:
            raise RunInProgress("Cannot clear the log while a run is in progress")
        self._log = []

    def _system_entry(self, output: str, level: str = "info") -> LogEntry:
        entry = LogEntry(nodeId=SYSTEM_ID, nodeName=SYSTEM_NAME, output=output, level=level)
        self._log.append(entry)
        return entry

    def _on_event(self, event: str, payload: dict):
        if self.event_callback:
            self.event_callback(event, payload)

    def _result(self) -> RunResult:
        return RunResult(status=self._state, log=self.log, failedNodeId=self.failed_node_id)

    async def run(self, workflow: Workflow) -> RunResult:
        # Check-and-set happens before the first await, so it cannot interleave
        if self.busy:
            raise RunInProgress("A run is already in progress")

        self._state = RunStatus.RESOLVING
        self._log = []
        self._shared = {}
        self.failed_node_id = None

        try:
            return await self._execute(workflow)
        finally:
            if self.busy:
                # Cancelled (or interrupted) before the run settled
                logger.warning("Run did not settle, marking it failed")
                self._system_entry("Error: Run was interrupted", level="error")
                self.failed_node_id = self._shared.get("current_node_id")
                self._state = RunStatus.FAILED

    async def _execute(self, workflow: Workflow) -> RunResult:
        try:
            order = resolve_execution_order(workflow.nodes, workflow.edges)
        except NotExecutable as e:
            logger.warning(f"Workflow is not executable: {e.reason}")
            self._system_entry(validation_message(e), level="error")
            self._state = RunStatus.FAILED
            return self._result()

        flow, error = build_flow(order, self._on_event)
        if error:
            self._system_entry(f"Error: {error}", level="error")
            self._state = RunStatus.FAILED
            return self._result()

        self._shared = {
            "log": self._log,
            "service_urls": dict(self.service_urls),
        }
        self._state = RunStatus.RUNNING
        self._system_entry(f"Flow execution started with {len(order)} nodes")
        logger.info(f"Running workflow with {len(order)} of {len(workflow.nodes)} nodes")

        try:
            await asyncio.to_thread(flow.run, self._shared)
        except Exception as e:
            logger.exception("Execution Error")
            self._system_entry(f"Error: {e}", level="error")
            self.failed_node_id = self._shared.get("current_node_id")
            self._state = RunStatus.FAILED
            return self._result()

        self.failed_node_id = self._shared.get("failed_node_id")
        self._state = RunStatus.FAILED if self.failed_node_id else RunStatus.COMPLETED
        logger.info(f"Run finished: {self._state.value}")
        return self._result()
