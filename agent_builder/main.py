from fastapi import FastAPI, WebSocket, WebSocketDisconnect, HTTPException, Body
from fastapi.middleware.cors import CORSMiddleware
from typing import Any, Dict, List
from collections import deque
import asyncio
import json
import logging

import uvicorn

import config
from .clients import RemoteServiceError, SchemaClient
from .engine import RunController, RunInProgress, execute_node
from .exporter import WorkflowImportError, export_workflow, import_workflow
from .node_registry import registry
from .resolver import NotExecutable, resolve_execution_order
from .schemas import NodeConfig, NodeMetadata, NodeTestRequest, RunResult, SchemaRequest, Workflow
from .websockets import manager
from .workflow_store import WorkflowStore

# Setup Logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(title="Agent Builder Flow API")

workflow_store = WorkflowStore(config.WORKFLOWS_DIR)

# Event loop of the server, used to broadcast from the flow's worker thread
loop_instance = None


@app.on_event("startup")
async def set_loop():
    global loop_instance
    loop_instance = asyncio.get_running_loop()


def event_callback(event, payload):
    if loop_instance:
        message = json.dumps({"type": event, "payload": payload})
        asyncio.run_coroutine_threadsafe(manager.broadcast(message), loop_instance)
    else:
        logger.warning("loop_instance is None, cannot broadcast events")


controller = RunController(event_callback=event_callback)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
def read_root():
    return {"message": "Agent Builder Flow API"}


@app.get("/api/nodes", response_model=List[NodeMetadata])
def get_nodes():
    return registry.get_all_metadata()


@app.post("/api/nodes/test")
async def test_node(request: NodeTestRequest):
    node = NodeConfig(id=request.nodeId, type=request.type, label=request.label, parameters=request.parameters)
    result = await asyncio.to_thread(execute_node, node, controller.service_urls)
    return result


@app.post("/api/nodes/schema")
async def generate_schema(request: SchemaRequest):
    if not request.description.strip():
        raise HTTPException(status_code=400, detail="description is required.")
    client = SchemaClient(controller.service_urls.get("schema"))
    try:
        schema = await asyncio.to_thread(client.generate_schema, request.description)
    except RemoteServiceError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return {"schema": schema}


# --- WORKFLOW ENDPOINTS ---

@app.post("/api/workflow/validate")
def validate_workflow(workflow: Workflow):
    try:
        order = resolve_execution_order(workflow.nodes, workflow.edges)
    except NotExecutable as e:
        return {"executable": False, "reason": e.reason, "message": str(e)}
    return {"executable": True, "order": [n.id for n in order]}


@app.post("/api/workflow/run", response_model=RunResult)
async def run_workflow_endpoint(workflow: Workflow):
    if controller.busy:
        raise HTTPException(status_code=409, detail="A run is already in progress")
    await manager.broadcast(json.dumps({"type": "workflow_start", "payload": {"nodes": len(workflow.nodes)}}))
    try:
        result = await controller.run(workflow)
    except RunInProgress as e:
        raise HTTPException(status_code=409, detail=str(e))

    await manager.broadcast(json.dumps({"type": "workflow_end", "payload": result.model_dump(mode="json")}))
    return result


@app.get("/api/workflow/status")
def run_status():
    return {
        "state": controller.state.value,
        "currentNodeId": controller.current_node_id,
        "log": [entry.model_dump(mode="json") for entry in controller.log],
    }


@app.delete("/api/workflow/log")
def clear_run_log():
    try:
        controller.clear_log()
    except RunInProgress as e:
        raise HTTPException(status_code=409, detail=str(e))
    return {"status": "cleared"}


@app.post("/api/workflow/export")
def export_workflow_endpoint(workflow: Workflow):
    return json.loads(export_workflow(workflow))


@app.post("/api/workflow/import")
def import_workflow_endpoint(document: Dict[str, Any] = Body(...)):
    try:
        workflow = import_workflow(document)
    except WorkflowImportError as e:
        raise HTTPException(status_code=400, detail=f"Failed to import workflow: {e}")
    return {
        "workflow": workflow,
        "message": f"Workflow imported successfully: {len(workflow.nodes)} nodes and {len(workflow.edges)} connections loaded",
    }


@app.get("/api/workflows")
def list_workflows():
    return workflow_store.list()


@app.post("/api/workflows/{name}")
def save_workflow(name: str, workflow: Workflow):
    try:
        workflow_store.save(name, workflow)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"status": "saved", "name": name}


@app.get("/api/workflows/{name}", response_model=Workflow)
def load_workflow(name: str):
    try:
        return workflow_store.load(name)
    except FileNotFoundError:
        raise HTTPException(status_code=404, detail="Workflow not found")
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.delete("/api/workflows/{name}")
def delete_workflow(name: str):
    try:
        workflow_store.delete(name)
    except FileNotFoundError:
        raise HTTPException(status_code=404, detail="Workflow not found")
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"status": "deleted", "name": name}


@app.websocket("/api/ws")
async def websocket_endpoint(websocket: WebSocket):
    await manager.connect(websocket)
    try:
        while True:
            # Keep alive / listen
            await websocket.receive_text()
    except WebSocketDisconnect:
        manager.disconnect(websocket)
    except Exception as e:
        logger.warning(f"WebSocket receive failed: {e}")
        manager.disconnect(websocket)


# Log Buffer
log_buffer = deque(maxlen=config.LOG_BUFFER_SIZE)


class ListHandler(logging.Handler):
    def emit(self, record):
        log_buffer.append(self.format(record))


handler = ListHandler()
handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
logging.getLogger().addHandler(handler)


@app.get("/api/logs")
def get_logs():
    return list(log_buffer)


if __name__ == "__main__":
    uvicorn.run("agent_builder.main:app", host="0.0.0.0", port=8000, reload=True, timeout_keep_alive=300)
