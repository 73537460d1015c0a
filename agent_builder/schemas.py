from datetime import datetime, timezone
from enum import Enum
from pydantic import BaseModel, Field, model_validator
from typing import List, Dict, Any, Optional


class NodeType(str, Enum):
    START = "Start"
    END = "End"
    INPUT = "Input"
    LLM = "LLM"
    TOOL = "Tool"
    MEMORY = "Memory"
    OUTPUT = "Output"
    WEB_SCRAPING = "Web Scraping"
    STRUCTURED_OUTPUT = "Structured Output"
    EMBEDDING_GENERATOR = "Embedding Generator"
    SIMILARITY_SEARCH = "Similarity Search"
    TEXT_NOTE = "Text Note"


class ParamField(BaseModel):
    name: str
    type: str = "text"  # text, textarea, select
    options: Optional[List[str]] = None
    required: bool = False


class NodeMetadata(BaseModel):
    type: str
    description: str
    params: Dict[str, ParamField]


class Edge(BaseModel):
    id: Optional[str] = None
    source: str
    target: str
    sourceHandle: Optional[str] = None
    targetHandle: Optional[str] = None


class NodeConfig(BaseModel):
    id: str
    type: str  # Usually a NodeType value; unknown types are kept and run as no-ops
    label: str = ""
    position: Dict[str, float] = Field(default_factory=dict)
    parameters: Dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _lift_canvas_data(cls, values):
        # The browser canvas nests label/type/parameters under "data"
        if isinstance(values, dict) and isinstance(values.get("data"), dict):
            data = values["data"]
            values = {k: v for k, v in values.items() if k != "data"}
            if data.get("nodeType"):
                values["type"] = data["nodeType"]
            values.setdefault("label", data.get("label", ""))
            values.setdefault("parameters", data.get("parameters") or {})
        return values


class Workflow(BaseModel):
    nodes: List[NodeConfig]
    edges: List[Edge]
    nodeIdCounter: Optional[int] = None
    version: str = "1.0"
    exportedAt: Optional[str] = None


class LogEntry(BaseModel):
    nodeId: str
    nodeName: str
    output: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    level: str = "info"  # info, error


class RunStatus(str, Enum):
    IDLE = "idle"
    RESOLVING = "resolving"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class RunResult(BaseModel):
    status: RunStatus
    log: List[LogEntry]
    failedNodeId: Optional[str] = None


class NodeResult(BaseModel):
    success: bool
    output: str


class NodeTestRequest(BaseModel):
    type: str
    parameters: Dict[str, Any] = Field(default_factory=dict)
    nodeId: str = "test"
    label: str = ""


class SchemaRequest(BaseModel):
    description: str = ""
