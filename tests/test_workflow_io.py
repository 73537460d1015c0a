import json
import shutil
import tempfile
import unittest

from agent_builder.exporter import WorkflowImportError, export_workflow, import_workflow
from agent_builder.graph import WorkflowGraph
from agent_builder.workflow_store import WorkflowStore


class TestExportImport(unittest.TestCase):
    def setUp(self):
        graph = WorkflowGraph()
        start = graph.add_node("Start", label="Begin")
        llm = graph.add_node("LLM", parameters={"userMessage": "Hi", "temperature": "0.2"})
        end = graph.add_node("End")
        graph.connect(start.id, llm.id)
        graph.connect(llm.id, end.id)
        self.workflow = graph.to_workflow()

    def test_export_document_shape(self):
        doc = json.loads(export_workflow(self.workflow))

        self.assertEqual(doc["version"], "1.0")
        self.assertEqual(doc["nodeIdCounter"], 3)
        self.assertIsNotNone(doc["exportedAt"])
        self.assertEqual(len(doc["nodes"]), 3)
        self.assertEqual(len(doc["edges"]), 2)

    def test_round_trip_keeps_graph(self):
        restored = import_workflow(export_workflow(self.workflow))

        self.assertEqual([n.id for n in restored.nodes], [n.id for n in self.workflow.nodes])
        self.assertEqual(restored.nodes[1].parameters, {"userMessage": "Hi", "temperature": "0.2"})
        self.assertEqual(restored.nodes[0].label, "Begin")
        self.assertEqual([(e.source, e.target) for e in restored.edges],
                         [(e.source, e.target) for e in self.workflow.edges])

    def test_missing_edges_rejected(self):
        with self.assertRaises(WorkflowImportError):
            import_workflow('{"nodes": []}')

    def test_invalid_json_rejected(self):
        with self.assertRaises(WorkflowImportError):
            import_workflow("{not json")

    def test_canvas_shaped_nodes(self):
        doc = {
            "nodes": [
                {"id": "node_0", "type": "Start", "position": {"x": 1, "y": 2},
                 "data": {"label": "Node 1", "nodeType": "Start", "parameters": {}}},
                {"id": "node_5", "type": "Web Scraping", "position": {"x": 3, "y": 4},
                 "data": {"label": "Scraper", "nodeType": "Web Scraping",
                          "parameters": {"url": "https://example.com", "instruction": "title"}}},
            ],
            "edges": [{"id": "reactflow__edge-node_0-node_5", "source": "node_0", "target": "node_5"}],
        }

        workflow = import_workflow(doc)

        self.assertEqual(workflow.nodes[1].type, "Web Scraping")
        self.assertEqual(workflow.nodes[1].label, "Scraper")
        self.assertEqual(workflow.nodes[1].parameters["url"], "https://example.com")
        self.assertEqual(workflow.nodeIdCounter, 6)


class TestWorkflowStore(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.mkdtemp()
        self.store = WorkflowStore(self.tmp)
        graph = WorkflowGraph()
        graph.add_node("Start")
        self.workflow = graph.to_workflow()

    def tearDown(self):
        shutil.rmtree(self.tmp)

    def test_save_load_delete(self):
        self.store.save("demo", self.workflow)
        self.assertEqual(self.store.list(), ["demo"])

        loaded = self.store.load("demo")
        self.assertEqual(loaded.nodes[0].type, "Start")

        self.store.delete("demo")
        self.assertEqual(self.store.list(), [])

    def test_missing_workflow(self):
        with self.assertRaises(FileNotFoundError):
            self.store.load("nope")

    def test_rejects_path_names(self):
        with self.assertRaises(ValueError):
            self.store.save("../escape", self.workflow)


if __name__ == '__main__':
    unittest.main()
