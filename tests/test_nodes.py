import unittest
from unittest.mock import MagicMock, patch

import requests

from agent_builder.engine import execute_node, instantiate_node
from agent_builder.nodes.base import parse_float, parse_int
from agent_builder.schemas import NodeConfig


def fake_response(body, status_code=200):
    resp = MagicMock()
    resp.status_code = status_code
    resp.ok = 200 <= status_code < 300
    resp.json.return_value = body
    return resp


def run_node(node_type, parameters, node_id="node_1"):
    return execute_node(NodeConfig(id=node_id, type=node_type, label="Test", parameters=parameters))


class TestCoercions(unittest.TestCase):
    def test_parse_float(self):
        self.assertEqual(parse_float("0.2", 0.7), 0.2)
        self.assertEqual(parse_float("", 0.7), 0.7)
        self.assertEqual(parse_float("warm", 0.7), 0.7)
        self.assertEqual(parse_float(None, 0.7), 0.7)

    def test_parse_float_rejects_non_finite(self):
        self.assertEqual(parse_float("nan", 0.7), 0.7)
        self.assertEqual(parse_float("inf", 0.7), 0.7)
        self.assertEqual(parse_float("-Infinity", 0.7), 0.7)

    def test_parse_int(self):
        self.assertEqual(parse_int("12", 40), 12)
        self.assertEqual(parse_int(" ", 40), 40)
        self.assertEqual(parse_int("1.5", 40), 40)


class TestLLMNode(unittest.TestCase):
    @patch('agent_builder.clients.requests.post')
    def test_request_payload_and_defaults(self, mock_post):
        mock_post.return_value = fake_response({"output": "Hello"})

        result = run_node("LLM", {"userMessage": "Hi", "temperature": "abc", "topK": ""})

        self.assertTrue(result.success)
        self.assertEqual(result.output, "Hello")
        payload = mock_post.call_args.kwargs['json']
        self.assertEqual(payload, {
            "systemInstruction": "",
            "userMessage": "Hi",
            "temperature": 0.7,
            "maxOutputTokens": 1024,
            "topK": 40,
        })

    @patch('agent_builder.clients.requests.post')
    def test_numeric_parameters_are_parsed(self, mock_post):
        mock_post.return_value = fake_response({"output": "ok"})

        run_node("LLM", {
            "userMessage": "Hi",
            "systemInstruction": "Be brief",
            "temperature": "0.1",
            "maxOutputTokens": "256",
            "topK": "8",
        })

        payload = mock_post.call_args.kwargs['json']
        self.assertEqual(payload["systemInstruction"], "Be brief")
        self.assertEqual(payload["temperature"], 0.1)
        self.assertEqual(payload["maxOutputTokens"], 256)
        self.assertEqual(payload["topK"], 8)

    @patch('agent_builder.clients.requests.post')
    def test_non_finite_temperature_uses_default(self, mock_post):
        mock_post.return_value = fake_response({"output": "ok"})

        run_node("LLM", {"userMessage": "Hi", "temperature": "nan"})

        self.assertEqual(mock_post.call_args.kwargs['json']["temperature"], 0.7)

    @patch('agent_builder.clients.requests.post')
    def test_missing_user_message_fails_without_call(self, mock_post):
        result = run_node("LLM", {})

        self.assertFalse(result.success)
        self.assertEqual(result.output, "Error: userMessage is required.")
        mock_post.assert_not_called()

    @patch('agent_builder.clients.requests.post')
    def test_http_error_uses_error_field(self, mock_post):
        mock_post.return_value = fake_response({"error": "Gemini API error"}, status_code=502)

        result = run_node("LLM", {"userMessage": "Hi"})

        self.assertFalse(result.success)
        self.assertEqual(result.output, "Error: Gemini API error")

    @patch('agent_builder.clients.requests.post')
    def test_http_error_without_body(self, mock_post):
        resp = fake_response(None, status_code=500)
        resp.json.side_effect = ValueError("no json")
        mock_post.return_value = resp

        result = run_node("LLM", {"userMessage": "Hi"})

        self.assertEqual(result.output, "Error: Failed to get response")

    @patch('agent_builder.clients.requests.post')
    def test_transport_error(self, mock_post):
        mock_post.side_effect = requests.ConnectionError("connection refused")

        result = run_node("LLM", {"userMessage": "Hi"})

        self.assertFalse(result.success)
        self.assertEqual(result.output, "Error: connection refused")

    @patch('agent_builder.clients.requests.post')
    def test_malformed_payload(self, mock_post):
        mock_post.return_value = fake_response({"text": "no output field"})

        result = run_node("LLM", {"userMessage": "Hi"})

        self.assertFalse(result.success)
        self.assertIn("Malformed response", result.output)


class TestWebScrapingNode(unittest.TestCase):
    @patch('agent_builder.clients.requests.post')
    def test_formats_extraction(self, mock_post):
        mock_post.return_value = fake_response({
            "success": True,
            "url": "https://example.com",
            "instruction": "get the title",
            "data": {"title": "Example"},
        })

        result = run_node("Web Scraping", {"url": "https://example.com", "instruction": "get the title"})

        self.assertTrue(result.success)
        self.assertEqual(
            result.output,
            "Extraction Complete\n\n"
            "URL: https://example.com\n"
            "Instruction: get the title\n\n"
            "--- Extracted Data ---\n"
            '{\n  "title": "Example"\n}',
        )
        self.assertEqual(mock_post.call_args.kwargs['json'], {"url": "https://example.com", "instruction": "get the title"})

    @patch('agent_builder.clients.requests.post')
    def test_requires_instruction(self, mock_post):
        result = run_node("Web Scraping", {"url": "https://example.com"})

        self.assertEqual(result.output, "Error: instruction is required.")
        mock_post.assert_not_called()

    @patch('agent_builder.clients.requests.post')
    def test_falls_back_to_details(self, mock_post):
        mock_post.return_value = fake_response({"success": False, "details": "timeout"}, status_code=500)

        result = run_node("Web Scraping", {"url": "https://example.com", "instruction": "x"})

        self.assertEqual(result.output, "Error: timeout")

    @patch('agent_builder.clients.requests.post')
    def test_unsuccessful_body_with_ok_status(self, mock_post):
        mock_post.return_value = fake_response({"success": False, "error": "Web scraping failed"})

        result = run_node("Web Scraping", {"url": "https://example.com", "instruction": "x"})

        self.assertFalse(result.success)
        self.assertEqual(result.output, "Error: Web scraping failed")


class TestVectorNodes(unittest.TestCase):
    @patch('agent_builder.clients.requests.post')
    def test_embedding_sends_node_id(self, mock_post):
        mock_post.return_value = fake_response({
            "success": True,
            "id": "emb_1",
            "dimension": 1024,
            "metadata": {"text": "hello", "nodeId": "node_3"},
        })

        result = run_node("Embedding Generator", {"text": "hello", "tag": "greeting"}, node_id="node_3")

        payload = mock_post.call_args.kwargs['json']
        self.assertEqual(payload["action"], "embed")
        self.assertEqual(payload["nodeId"], "node_3")
        self.assertEqual(payload["tag"], "greeting")
        self.assertEqual(payload["source"], "")
        self.assertTrue(result.success)
        self.assertTrue(result.output.startswith("Embedding Generated & Stored\n\nID: emb_1\nDimension: 1024\n\n--- Metadata ---\n"))

    @patch('agent_builder.clients.requests.post')
    def test_embedding_error(self, mock_post):
        mock_post.return_value = fake_response({"error": "Text is required for embedding"}, status_code=400)

        result = run_node("Embedding Generator", {"text": "hello"})

        self.assertEqual(result.output, "Error: Text is required for embedding")

    @patch('agent_builder.clients.requests.post')
    def test_search_formats_matches(self, mock_post):
        mock_post.return_value = fake_response({
            "success": True,
            "query": "greeting",
            "topK": 2,
            "resultsCount": 2,
            "matches": [
                {"score": 0.91234, "text": "hello world", "source": "docs", "tag": ""},
                {"score": 0.5, "text": "x" * 150},
            ],
        })

        result = run_node("Similarity Search", {"query": "greeting", "topK": "2"})

        self.assertEqual(mock_post.call_args.kwargs['json'], {"action": "search", "query": "greeting", "topK": 2})
        self.assertEqual(
            result.output,
            "Similarity Search Complete\n\n"
            "Query: greeting\n"
            "Results Found: 2\n\n"
            "--- Top 2 Matches ---\n\n"
            "1. Score: 0.9123\n"
            "   Text: hello world...\n"
            "   Source: docs\n\n"
            "2. Score: 0.5000\n"
            f"   Text: {'x' * 100}...\n\n",
        )

    @patch('agent_builder.clients.requests.post')
    def test_search_default_top_k(self, mock_post):
        mock_post.return_value = fake_response({"success": True, "matches": []})

        result = run_node("Similarity Search", {"query": "q", "topK": "many"})

        self.assertEqual(mock_post.call_args.kwargs['json']["topK"], 5)
        self.assertIn("Results Found: 0", result.output)


class TestStructuredOutputNode(unittest.TestCase):
    SCHEMA = '{"type": "object", "properties": {"name": {"type": "string"}}}'

    @patch('agent_builder.clients.requests.post')
    def test_parses_input_against_schema(self, mock_post):
        import config
        mock_post.return_value = fake_response({"parsedData": {"name": "Ada"}, "rawOutput": '{"name": "Ada"}'})

        result = run_node("Structured Output", {"schema": self.SCHEMA, "inputData": "Ada wrote the first program"})

        self.assertTrue(result.success)
        self.assertEqual(mock_post.call_args.args[0], config.PARSE_URL)
        self.assertEqual(mock_post.call_args.kwargs['json'], {
            "inputText": "Ada wrote the first program",
            "jsonSchema": self.SCHEMA,
        })
        self.assertTrue(result.output.startswith("Structured Output Complete\n\n--- Schema ---\n"))
        self.assertIn('--- Parsed Data ---\n{\n  "name": "Ada"\n}', result.output)

    @patch('agent_builder.clients.requests.post')
    def test_output_that_is_not_json_fails(self, mock_post):
        mock_post.return_value = fake_response(
            {"error": "Generated output is not valid JSON", "output": "name: Ada"}, status_code=400
        )

        result = run_node("Structured Output", {"schema": self.SCHEMA, "inputData": "Ada"})

        self.assertFalse(result.success)
        self.assertEqual(result.output, "Error: Generated output is not valid JSON\n\n--- Raw Output ---\nname: Ada")

    @patch('agent_builder.clients.requests.post')
    def test_response_without_parsed_data_is_malformed(self, mock_post):
        mock_post.return_value = fake_response({"rawOutput": "{}"})

        result = run_node("Structured Output", {"schema": self.SCHEMA, "inputData": "Ada"})

        self.assertFalse(result.success)
        self.assertIn("Malformed response", result.output)
        self.assertIn("parsedData", result.output)

    @patch('agent_builder.clients.requests.post')
    def test_schema_generated_from_description(self, mock_post):
        import config
        mock_post.side_effect = [
            fake_response({"schema": self.SCHEMA}),
            fake_response({"parsedData": {"name": "Ada"}, "rawOutput": ""}),
        ]

        result = run_node("Structured Output", {"schemaDescription": "a person's name", "inputData": "Ada"})

        self.assertTrue(result.success)
        schema_call, parse_call = mock_post.call_args_list
        self.assertEqual(schema_call.args[0], config.SCHEMA_URL)
        self.assertEqual(schema_call.kwargs['json'], {"description": "a person's name"})
        self.assertEqual(parse_call.kwargs['json']["jsonSchema"], self.SCHEMA)

    @patch('agent_builder.clients.requests.post')
    def test_generated_schema_that_is_not_json_fails(self, mock_post):
        mock_post.return_value = fake_response({"schema": "type: object"})

        result = run_node("Structured Output", {"schemaDescription": "a name", "inputData": "Ada"})

        self.assertFalse(result.success)
        self.assertEqual(result.output, "Error: Generated schema is not valid JSON")
        self.assertEqual(mock_post.call_count, 1)

    @patch('agent_builder.clients.requests.post')
    def test_local_validation(self, mock_post):
        self.assertEqual(
            run_node("Structured Output", {"schema": self.SCHEMA}).output,
            "Error: inputData is required.",
        )
        self.assertEqual(
            run_node("Structured Output", {"inputData": "Ada"}).output,
            "Error: schema or schemaDescription is required.",
        )
        self.assertEqual(
            run_node("Structured Output", {"schema": "{oops", "inputData": "Ada"}).output,
            "Error: Invalid JSON Schema format",
        )
        mock_post.assert_not_called()

    @patch('agent_builder.clients.requests.post')
    def test_passes_through_inside_a_flow(self, mock_post):
        node = instantiate_node(NodeConfig(id="node_3", type="Structured Output",
                                           parameters={"schema": self.SCHEMA, "inputData": "Ada"}))

        result = node._exec(node.prep({}))

        self.assertTrue(result.success)
        self.assertEqual(result.output, "Skipped: Structured Output nodes have no runtime action")
        mock_post.assert_not_called()


class TestMarkerNodes(unittest.TestCase):
    def test_end_marker(self):
        result = run_node("End", {})
        self.assertTrue(result.success)
        self.assertEqual(result.output, "Flow execution completed successfully")

    @patch('agent_builder.clients.requests.post')
    def test_pass_through_types_make_no_calls(self, mock_post):
        for node_type in ["Input", "Tool", "Memory", "Output", "Text Note"]:
            result = run_node(node_type, {"note": "anything"})
            self.assertTrue(result.success)
            self.assertIn(node_type, result.output)
        mock_post.assert_not_called()

    def test_unknown_type_is_a_no_op(self):
        node = instantiate_node(NodeConfig(id="node_9", type="LLM JSON Parser"))
        result = node._exec(node.prep({}))
        self.assertTrue(result.success)
        self.assertIn("LLM JSON Parser", result.output)


class TestServiceUrlHierarchy(unittest.TestCase):
    @patch('agent_builder.clients.requests.post')
    def test_config_default(self, mock_post):
        import config
        mock_post.return_value = fake_response({"output": "x"})

        run_node("LLM", {"userMessage": "Hi"})

        self.assertEqual(mock_post.call_args.args[0], config.GENERATION_URL)

    @patch('agent_builder.clients.requests.post')
    def test_run_override(self, mock_post):
        mock_post.return_value = fake_response({"output": "x"})

        execute_node(
            NodeConfig(id="n", type="LLM", parameters={"userMessage": "Hi"}),
            service_urls={"generation": "http://override/api/gemini"},
        )

        self.assertEqual(mock_post.call_args.args[0], "http://override/api/gemini")


if __name__ == '__main__':
    unittest.main()
