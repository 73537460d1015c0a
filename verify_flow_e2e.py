import asyncio
import sys

from agent_builder.engine import RunController
from agent_builder.graph import WorkflowGraph
from agent_builder.schemas import RunStatus


async def verify_llm_flow(message: str):
    print("Running Start -> LLM -> End against the configured generation service...")

    graph = WorkflowGraph()
    start = graph.add_node("Start", label="Start")
    llm = graph.add_node("LLM", label="Assistant", parameters={
        "systemInstruction": "Answer in one sentence.",
        "userMessage": message,
    })
    end = graph.add_node("End", label="End")
    graph.connect(start.id, llm.id)
    graph.connect(llm.id, end.id)

    controller = RunController(event_callback=lambda event, payload: print(f"  [{event}] {payload['node_id']}"))
    result = await controller.run(graph.to_workflow())

    for entry in result.log:
        print(f"{entry.timestamp:%H:%M:%S} {entry.nodeName}: {entry.output}")

    if result.status != RunStatus.COMPLETED:
        print(f"❌ Run failed at {result.failedNodeId}")
        return 1
    print("✅ Verification Successful: flow ran to End")
    return 0


if __name__ == "__main__":
    prompt = sys.argv[1] if len(sys.argv) > 1 else "What is the capital of France?"
    sys.exit(asyncio.run(verify_llm_flow(prompt)))
