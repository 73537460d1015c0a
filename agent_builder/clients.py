"""
Thin clients for the remote services a flow calls out to.

Each client posts one JSON request and returns the decoded response body.
Any non-2xx status, transport failure or unusable body is raised as
RemoteServiceError so node executors have a single exception to handle.
"""
import json
import logging
from typing import Any, Dict, Optional, Sequence

import requests

import config

logger = logging.getLogger(__name__)


class RemoteServiceError(Exception):
    def __init__(self, message: str, payload: Optional[dict] = None):
        super().__init__(message)
        self.payload = payload or {}


class ServiceClient:
    DEFAULT_URL = ""

    def __init__(self, url: Optional[str] = None, timeout: Optional[float] = None):
        self.url = url or self.DEFAULT_URL
        self.timeout = timeout if timeout is not None else config.REQUEST_TIMEOUT

    def _post(self, payload: Dict[str, Any], fallback_error: str = "Request failed",
              required_fields: Sequence[str] = ()) -> Dict[str, Any]:
        logger.debug(f"POST {self.url} keys={list(payload.keys())}")
        try:
            resp = requests.post(self.url, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            raise RemoteServiceError(str(e)) from e

        try:
            data = resp.json()
        except ValueError:
            data = None

        if not resp.ok:
            body = data if isinstance(data, dict) else {}
            message = body.get("error") or body.get("details") or fallback_error
            logger.warning(f"{self.url} responded {resp.status_code}: {message}")
            raise RemoteServiceError(str(message), payload=body)

        if not isinstance(data, dict):
            raise RemoteServiceError(f"Malformed response from {self.url}: expected a JSON object")
        if data.get("success") is False:
            raise RemoteServiceError(str(data.get("error") or data.get("details") or fallback_error), payload=data)
        missing = [f for f in required_fields if f not in data]
        if missing:
            raise RemoteServiceError(
                f"Malformed response from {self.url}: missing {', '.join(missing)}", payload=data
            )
        return data


class GenerationClient(ServiceClient):
    DEFAULT_URL = config.GENERATION_URL

    def generate(self, user_message: str, system_instruction: str = "", temperature: float = 0.7,
                 max_output_tokens: int = 1024, top_k: int = 40) -> str:
        data = self._post({
            "systemInstruction": system_instruction,
            "userMessage": user_message,
            "temperature": temperature,
            "maxOutputTokens": max_output_tokens,
            "topK": top_k,
        }, "Failed to get response", ("output",))
        return str(data["output"])


class ExtractionClient(ServiceClient):
    DEFAULT_URL = config.EXTRACTION_URL

    def extract(self, url: str, instruction: str) -> Dict[str, Any]:
        return self._post({"url": url, "instruction": instruction}, "Failed to extract data", ("data",))


class VectorStoreClient(ServiceClient):
    DEFAULT_URL = config.VECTOR_STORE_URL

    def embed(self, text: str, node_id: str, source: str = "", info: str = "", tag: str = "",
              workflow: str = "") -> Dict[str, Any]:
        return self._post({
            "action": "embed",
            "text": text,
            "source": source,
            "info": info,
            "tag": tag,
            "workflow": workflow,
            "nodeId": node_id,
        }, "Failed to generate embedding", ("id", "dimension"))

    def search(self, query: str, top_k: int = 5) -> Dict[str, Any]:
        data = self._post({"action": "search", "query": query, "topK": top_k}, "Failed to search", ("matches",))
        if not isinstance(data["matches"], list):
            raise RemoteServiceError(f"Malformed response from {self.url}: matches is not a list", payload=data)
        return data


class SchemaClient(ServiceClient):
    DEFAULT_URL = config.SCHEMA_URL

    def generate_schema(self, description: str) -> str:
        data = self._post({"description": description}, "Failed to generate schema", ("schema",))
        schema = str(data["schema"])
        try:
            json.loads(schema)
        except ValueError:
            raise RemoteServiceError("Generated schema is not valid JSON", payload=data)
        return schema


class ParserClient(ServiceClient):
    """Asks the generation service to fill a JSON schema from free text."""
    DEFAULT_URL = config.PARSE_URL

    def parse(self, input_text: str, json_schema: str) -> Dict[str, Any]:
        return self._post(
            {"inputText": input_text, "jsonSchema": json_schema}, "Failed to parse data", ("parsedData",)
        )
