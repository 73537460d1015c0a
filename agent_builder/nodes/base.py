import logging
import math
from typing import Any, Dict, Optional

from pocketflow import Node

import config

from ..schemas import LogEntry, NodeMetadata, NodeResult, ParamField

logger = logging.getLogger(__name__)

ERROR_ACTION = "error"


def parse_float(value: Any, default: float) -> float:
    try:
        number = float(value) if str(value).strip() else default
    except (TypeError, ValueError):
        return default
    # nan/inf cannot be sent as JSON
    return number if math.isfinite(number) else default


def parse_int(value: Any, default: int) -> int:
    try:
        return int(str(value).strip()) if str(value).strip() else default
    except (TypeError, ValueError):
        return default


class BasePlatformNode:
    """Mixin to add platform metadata and run logging to PocketFlow nodes"""
    NODE_TYPE = "base"
    DESCRIPTION = "Base Node"
    PARAMS: Dict[str, Dict[str, Any]] = {}  # Example: {"url": {"name": "Website URL", "required": True}}
    SERVICE_URL_KEY: Optional[str] = None  # Key in shared["service_urls"] that overrides config

    @classmethod
    def get_schema(cls) -> NodeMetadata:
        return NodeMetadata(
            type=cls.NODE_TYPE,
            description=cls.DESCRIPTION,
            params={key: ParamField(**field) for key, field in cls.PARAMS.items()},
        )

    def param(self, key: str, default: str = "") -> str:
        cfg = getattr(self, "config", {}) or {}
        value = cfg.get(key)
        if value is None:
            return default
        return str(value)

    def missing_required(self) -> Optional[str]:
        for key, field in self.PARAMS.items():
            if field.get("required") and not self.param(key).strip():
                return key
        return None

    def service_url(self, shared, key: Optional[str] = None) -> Optional[str]:
        key = key or self.SERVICE_URL_KEY
        if not key:
            return None
        # Run-level override first, then the app default
        overrides = shared.get("service_urls") or {}
        return overrides.get(key) or getattr(config, f"{key.upper()}_URL")

    def _run(self, shared):
        node_id = getattr(self, "id", "unknown")
        shared["current_node_id"] = node_id

        self._emit("node_start", {"node_id": node_id})
        action = super()._run(shared)
        if action == ERROR_ACTION:
            entry = shared["log"][-1] if shared.get("log") else None
            self._emit("node_error", {"node_id": node_id, "error": entry.output if entry else ""})
        else:
            self._emit("node_end", {"node_id": node_id})
        return action

    def _emit(self, event: str, payload: dict):
        callback = getattr(self, "on_event", None)
        if not callback:
            return
        try:
            callback(event, payload)
        except Exception as e:
            logger.error(f"Event callback failed for {event}: {e}")

    def exec_fallback(self, prep_res, exc):
        # Executors never let an exception escape to the flow
        logger.exception(f"Unhandled error in {self.NODE_TYPE} node {getattr(self, 'id', '?')}")
        return NodeResult(success=False, output=f"Error: {exc}")

    def post(self, shared, prep_res, exec_res: NodeResult):
        shared.setdefault("log", []).append(LogEntry(
            nodeId=getattr(self, "id", "unknown"),
            nodeName=getattr(self, "name", "") or getattr(self, "id", "unknown"),
            output=exec_res.output,
            level="info" if exec_res.success else "error",
        ))
        if not exec_res.success:
            shared["failed_node_id"] = getattr(self, "id", None)
            return ERROR_ACTION
        # Return None to use "default" edge
        return None


class ExecutorNode(BasePlatformNode, Node):
    """Node that performs one remote call and reports a NodeResult."""

    def prep(self, shared):
        self.endpoint = self.service_url(shared)
        return {key: self.param(key) for key in self.PARAMS}

    def exec(self, prep_res) -> NodeResult:
        missing = self.missing_required()
        if missing:
            return NodeResult(success=False, output=f"Error: {missing} is required.")
        try:
            return NodeResult(success=True, output=self.call(prep_res))
        except Exception as e:
            logger.warning(f"{self.NODE_TYPE} node {getattr(self, 'id', '?')} failed: {e}")
            return NodeResult(success=False, output=f"Error: {e}")

    def call(self, prep_res) -> str:
        raise NotImplementedError
