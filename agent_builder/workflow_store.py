import os
import re
import logging
from typing import List

from .exporter import export_workflow, import_workflow
from .schemas import Workflow

logger = logging.getLogger(__name__)

NAME_PATTERN = re.compile(r"^[A-Za-z0-9_\-]+$")


class WorkflowStore:
    """Saved workflows, one JSON document per name in a directory."""

    def __init__(self, workflows_dir: str):
        self.workflows_dir = str(workflows_dir)
        os.makedirs(self.workflows_dir, exist_ok=True)

    def _path(self, name: str) -> str:
        if not NAME_PATTERN.match(name):
            raise ValueError(f"Invalid workflow name: {name}")
        return os.path.join(self.workflows_dir, f"{name}.json")

    def list(self) -> List[str]:
        if not os.path.exists(self.workflows_dir):
            return []
        return sorted(f[:-len(".json")] for f in os.listdir(self.workflows_dir) if f.endswith(".json"))

    def save(self, name: str, workflow: Workflow) -> str:
        path = self._path(name)
        with open(path, "w", encoding="utf-8") as f:
            f.write(export_workflow(workflow))
        logger.info(f"Saved workflow {name} ({len(workflow.nodes)} nodes)")
        return path

    def load(self, name: str) -> Workflow:
        path = self._path(name)
        if not os.path.exists(path):
            raise FileNotFoundError(f"Workflow {name} not found")
        with open(path, "r", encoding="utf-8") as f:
            return import_workflow(f.read())

    def delete(self, name: str):
        path = self._path(name)
        if not os.path.exists(path):
            raise FileNotFoundError(f"Workflow {name} not found")
        os.remove(path)
        logger.info(f"Deleted workflow: {name}")
